"""账户注册表持久化：存储端口协议、JSON 编解码与文件 / 内存两种实现。"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from errors import PersistenceError

log = logging.getLogger(__name__)


class PersistencePort(Protocol):
    """
    注册表存储抽象。

    核心只通过这两个方法读写整个注册表，文档内容对存储端不透明。
    """

    def load_registry(self) -> Optional[str]:
        """返回上次保存的文档；从未保存过时返回 None。"""

        ...

    def save_registry(self, blob: str) -> None:
        """保存完整文档，失败时抛出 PersistenceError。"""

        ...


def dump_registry(document: Dict[str, Any]) -> str:
    """将注册表文档序列化为 JSON 文本，键顺序由调用方构造的字典决定。"""
    return json.dumps(document, ensure_ascii=False, indent=2)


def parse_registry(blob: str) -> Dict[str, Any]:
    """解析注册表 JSON 文本并校验顶层结构。"""
    try:
        document = json.loads(blob)
    except (TypeError, ValueError) as exc:
        raise PersistenceError(f"注册表不是有效的 JSON: {exc}") from exc
    if not isinstance(document, dict) or not isinstance(document.get("accounts"), list):
        raise PersistenceError("注册表缺少 accounts 列表")
    current = document.get("currentAccountId")
    if current is not None and not isinstance(current, str):
        raise PersistenceError("currentAccountId 必须为字符串")
    return document


class JsonFileRegistry:
    """以 UTF-8 JSON 文件保存注册表，写入时先写临时文件再原子替换。"""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load_registry(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"读取注册表失败: {self.path}: {exc}") from exc

    def save_registry(self, blob: str) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(directory))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(blob)
                # 注册表含私钥，仅允许所有者读写
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"写入注册表失败: {self.path}: {exc}") from exc
        log.debug("注册表已写入 %s", self.path)


class InMemoryRegistry:
    """内存存储，保存最近一次写入的文档。"""

    def __init__(self, blob: Optional[str] = None) -> None:
        self.blob = blob
        self.saves = 0

    def load_registry(self) -> Optional[str]:
        return self.blob

    def save_registry(self, blob: str) -> None:
        self.blob = blob
        self.saves += 1

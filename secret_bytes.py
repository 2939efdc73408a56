"""敏感字节容器：独占缓冲区、可主动擦除、禁止复制与序列化。"""

import hmac
from typing import Union


class SecretBytes:
    """
    持有私钥、种子等秘密材料的独占句柄。

    内部缓冲区为 bytearray，调用 wipe() 后清零且不可再读取。
    repr 不会输出内容；copy / deepcopy / pickle 一律拒绝，
    避免同一份秘密在多处留下副本。
    """

    __slots__ = ("_buf", "_wiped")

    def __init__(self, data: Union[bytes, bytearray, memoryview]) -> None:
        self._buf = bytearray(data)
        self._wiped = False

    # ------------------------- 访问 ------------------------- #
    def reveal(self) -> bytes:
        """返回秘密内容的 bytes 副本，调用方应尽快丢弃。"""
        self._ensure_alive()
        return bytes(self._buf)

    def view(self) -> memoryview:
        """返回内部缓冲区的只读视图，不产生副本。"""
        self._ensure_alive()
        return memoryview(self._buf).toreadonly()

    def hex(self) -> str:
        """十六进制编码，供导出使用。"""
        self._ensure_alive()
        return self._buf.hex()

    def __len__(self) -> int:
        return len(self._buf)

    @property
    def wiped(self) -> bool:
        return self._wiped

    # ------------------------- 生命周期 ------------------------- #
    def wipe(self) -> None:
        """将缓冲区清零并标记为失效，可重复调用。"""
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._wiped = True

    def __enter__(self) -> "SecretBytes":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def _ensure_alive(self) -> None:
        if self._wiped:
            raise ValueError("秘密数据已被擦除")

    # ------------------------- 比较与保护 ------------------------- #
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretBytes):
            return NotImplemented
        self._ensure_alive()
        other._ensure_alive()
        return hmac.compare_digest(bytes(self._buf), bytes(other._buf))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._buf)} bytes"
        return f"SecretBytes(<{state}>)"

    __str__ = __repr__

    def __copy__(self):
        raise TypeError("SecretBytes 不允许复制")

    def __deepcopy__(self, memo):
        raise TypeError("SecretBytes 不允许复制")

    def __reduce__(self):
        raise TypeError("SecretBytes 不允许序列化")

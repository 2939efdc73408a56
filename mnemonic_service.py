"""助记词服务：生成、校验 BIP39 助记词并转换为 64 字节种子。"""

import logging
from typing import Union

from mnemonic import Mnemonic

from config import MNEMONIC_LANGUAGE, MNEMONIC_STRENGTH, MNEMONIC_WORD_COUNT
from errors import InvalidMnemonicError
from models import MnemonicPhrase
from secret_bytes import SecretBytes

log = logging.getLogger(__name__)


def normalize_phrase(phrase: str) -> str:
    """按 NFKD 规范化后去掉首尾空白，并将连续空白折叠为单个空格。"""
    return " ".join(Mnemonic.normalize_string(phrase).split())


class MnemonicService:
    """封装标准 BIP39 英文词表生成器，只接受 12 词助记词。"""

    def __init__(self, language: str = MNEMONIC_LANGUAGE) -> None:
        self.mnemo = Mnemonic(language)

    def generate(self, entropy_bits: int = MNEMONIC_STRENGTH) -> MnemonicPhrase:
        """
        使用系统安全随机源生成 12 词助记词。

        :param entropy_bits: 熵位数，仅支持 128
        :raises ValueError: 熵位数不受支持
        """
        if entropy_bits != MNEMONIC_STRENGTH:
            raise ValueError(f"仅支持 {MNEMONIC_STRENGTH} 位熵（{MNEMONIC_WORD_COUNT} 个单词）")
        phrase = self.mnemo.generate(strength=entropy_bits)
        log.debug("已生成新的 %d 词助记词", MNEMONIC_WORD_COUNT)
        return MnemonicPhrase(tuple(phrase.split(" ")))

    def from_entropy(self, entropy: bytes) -> MnemonicPhrase:
        """由给定的 16 字节熵编码助记词（恢复与测试用）。"""
        if len(entropy) * 8 != MNEMONIC_STRENGTH:
            raise ValueError(f"熵长度必须为 {MNEMONIC_STRENGTH // 8} 字节")
        return MnemonicPhrase(tuple(self.mnemo.to_mnemonic(entropy).split(" ")))

    def validate(self, phrase: object) -> bool:
        """校验词数、词表与校验和；任何畸形输入都只返回 False。"""
        if not isinstance(phrase, str):
            return False
        normalized = normalize_phrase(phrase)
        if len(normalized.split(" ")) != MNEMONIC_WORD_COUNT:
            return False
        try:
            return bool(self.mnemo.check(normalized))
        except (ValueError, LookupError, TypeError):
            return False

    def parse(self, phrase: Union[str, MnemonicPhrase]) -> MnemonicPhrase:
        """校验并构造 MnemonicPhrase，无效时抛出 InvalidMnemonicError。"""
        if isinstance(phrase, MnemonicPhrase):
            return phrase
        if not self.validate(phrase):
            raise InvalidMnemonicError()
        return MnemonicPhrase(tuple(normalize_phrase(phrase).split(" ")))

    def to_seed(self, phrase: Union[str, MnemonicPhrase]) -> SecretBytes:
        """通过 PBKDF2-HMAC-SHA512（2048 轮，盐为 "mnemonic"）将助记词转换为种子。不使用 BIP39 口令。"""
        checked = self.parse(phrase)
        return SecretBytes(Mnemonic.to_seed(checked.phrase, ""))

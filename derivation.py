"""
钱包派生引擎：由 64 字节种子、链类型与派生索引确定性地计算密钥对与地址。

- 以太坊：BIP32 / secp256k1，路径 m/44'/60'/0'/0/{index}
- Solana：SLIP-0010 / ed25519，路径 m/44'/501'/0'/{index}'

所有函数均为纯函数，相同输入必定得到逐字节相同的输出。
"""

import hashlib
import hmac
import logging
from typing import Callable, Dict, List, Tuple, Union

from base58 import b58encode
from eth_keys import constants as eth_constants
from eth_keys import keys as eth_keys
from eth_utils import keccak, to_checksum_address
from nacl.signing import SigningKey

from config import HARDENED_OFFSET, SEED_LENGTH, ChainType, get_chain_spec
from errors import DerivationError, InvalidDerivationIndexError, InvalidSeedError
from models import EthereumWallet, SolanaWallet, WalletRecord
from secret_bytes import SecretBytes

log = logging.getLogger(__name__)

# 曲线阶常量
SECP256K1_N = eth_constants.SECPK1_N

SeedInput = Union[SecretBytes, bytes, bytearray]


def parse_path(path: str) -> List[Tuple[int, bool]]:
    """将 m/44'/60'/0'/0/0 形式的路径解析为 (索引, 是否硬化) 列表。"""
    segments = path.split("/")
    if not segments or segments[0] != "m":
        raise ValueError(f"派生路径必须以 m 开头: {path}")
    parsed = []
    for seg in segments[1:]:
        hardened = seg.endswith("'")
        index = int(seg.rstrip("'"))
        if not 0 <= index < HARDENED_OFFSET:
            raise ValueError(f"派生路径分段越界: {seg}")
        parsed.append((index, hardened))
    return parsed


# ------------------------- secp256k1 (BIP32) ------------------------- #
def _derive_child(private_key: bytes, chain_code: bytes, index: int, hardened: bool) -> Tuple[bytes, bytes]:
    """执行单步 BIP32 子私钥派生（secp256k1）。"""
    if hardened:
        data = b"\x00" + private_key + (index + HARDENED_OFFSET).to_bytes(4, "big")
    else:
        pub_compressed = eth_keys.PrivateKey(private_key).public_key.to_compressed_bytes()
        data = pub_compressed + index.to_bytes(4, "big")
    digest = hmac.new(chain_code, data, hashlib.sha512).digest()
    il, ir = digest[:32], digest[32:]
    il_int = int.from_bytes(il, "big")
    child_int = (il_int + int.from_bytes(private_key, "big")) % SECP256K1_N
    if il_int >= SECP256K1_N or child_int == 0:
        raise DerivationError("BIP32 派生得到无效子私钥")
    return child_int.to_bytes(32, "big"), ir


def _derive_secp256k1_private_key(seed: bytes, path: str) -> bytes:
    """从种子和路径计算最终 secp256k1 私钥。"""
    digest = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
    priv, chain = digest[:32], digest[32:]
    if not 0 < int.from_bytes(priv, "big") < SECP256K1_N:
        raise DerivationError("BIP32 主私钥无效")
    for index, hardened in parse_path(path):
        priv, chain = _derive_child(priv, chain, index, hardened)
    return priv


def ethereum_address(public_key: bytes) -> str:
    """对 64 字节未压缩公钥取 Keccak-256 末 20 字节，并按 EIP-55 输出大小写校验地址。"""
    return to_checksum_address(keccak(public_key)[-20:])


def ethereum_public_key(private_key: bytes) -> bytes:
    """由 32 字节私钥计算 64 字节未压缩公钥（不含 0x04 前缀）。"""
    return eth_keys.PrivateKey(private_key).public_key.to_bytes()


def _derive_ethereum(seed: bytes, index: int) -> EthereumWallet:
    path = get_chain_spec(ChainType.ETHEREUM).path_for(index)
    priv = _derive_secp256k1_private_key(seed, path)
    public_key = ethereum_public_key(priv)
    return EthereumWallet(
        derivation_index=index,
        derivation_path=path,
        address=ethereum_address(public_key),
        public_key=public_key,
        private_key=SecretBytes(priv),
    )


# ------------------------- ed25519 (SLIP-0010) ------------------------- #
def _slip10_derive_ed25519(seed: bytes, path: str) -> bytes:
    """依据 SLIP-0010 派生 ed25519 私钥种子；ed25519 只允许硬化分段。"""
    digest = hmac.new(b"ed25519 seed", seed, hashlib.sha512).digest()
    key, chain_code = digest[:32], digest[32:]
    for index, hardened in parse_path(path):
        if not hardened:
            raise ValueError(f"ed25519 派生路径的每一级都必须硬化: {path}")
        data = b"\x00" + key + (index + HARDENED_OFFSET).to_bytes(4, "big")
        digest = hmac.new(chain_code, data, hashlib.sha512).digest()
        key, chain_code = digest[:32], digest[32:]
    return key


def solana_keypair(private_seed: bytes) -> Tuple[bytes, bytes]:
    """由 32 字节种子生成 (32 字节公钥, 64 字节私钥)，私钥为 种子 + 公钥。"""
    signing_key = SigningKey(private_seed)
    public_key = bytes(signing_key.verify_key)
    return public_key, bytes(signing_key) + public_key


def _derive_solana(seed: bytes, index: int) -> SolanaWallet:
    path = get_chain_spec(ChainType.SOLANA).path_for(index)
    public_key, secret_key = solana_keypair(_slip10_derive_ed25519(seed, path))
    return SolanaWallet(
        derivation_index=index,
        derivation_path=path,
        address=base58_address(public_key),
        public_key=public_key,
        private_key=SecretBytes(secret_key),
    )


def base58_address(public_key: bytes) -> str:
    """Solana 地址：32 字节公钥的 Base58 编码。"""
    return b58encode(public_key).decode("ascii")


_DERIVERS: Dict[str, Callable[[bytes, int], WalletRecord]] = {
    ChainType.ETHEREUM: _derive_ethereum,
    ChainType.SOLANA: _derive_solana,
}


def _check_index(index: object) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidDerivationIndexError(index)
    if not 0 <= index < HARDENED_OFFSET:
        raise InvalidDerivationIndexError(index)
    return index


def derive(seed: SeedInput, chain_type: str, index: int) -> WalletRecord:
    """
    派生单个钱包。

    :param seed: 64 字节 BIP39 种子
    :param chain_type: ChainType.ETHEREUM 或 ChainType.SOLANA
    :param index: 派生索引，0 <= index < 2^31
    :raises UnsupportedChainError: 链类型未知
    :raises InvalidSeedError: 种子长度不是 64 字节
    :raises InvalidDerivationIndexError: 索引越界
    """
    spec = get_chain_spec(chain_type)
    if isinstance(seed, SecretBytes):
        raw = seed.view()
    elif isinstance(seed, (bytes, bytearray)):
        raw = memoryview(seed)
    else:
        raise TypeError(f"种子必须为字节串，实际为 {type(seed).__name__}")
    # 种子只以视图形式读入 HMAC；中间私钥仍是不可擦除的 bytes
    with raw:
        if len(raw) != SEED_LENGTH:
            raise InvalidSeedError(len(raw))
        index = _check_index(index)
        wallet = _DERIVERS[spec.chain_type](raw, index)
    log.debug("已派生 %s 钱包 %s -> %s", spec.chain_type, wallet.derivation_path, wallet.address)
    return wallet


class DerivationEngine:
    """无状态派生引擎，便于在 AccountStore 中注入替换。"""

    def derive(self, seed: SeedInput, chain_type: str, index: int) -> WalletRecord:
        return derive(seed, chain_type, index)

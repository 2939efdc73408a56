import pytest
from base58 import b58decode
from eth_account import Account as EthAccount
from nacl.signing import SigningKey

import derivation
from config import ChainType, get_chain_spec
from errors import InvalidDerivationIndexError, InvalidSeedError, UnsupportedChainError
from models import EthereumWallet, SolanaWallet

from vectors import ABANDON_MNEMONIC, LEGAL_MNEMONIC

EthAccount.enable_unaudited_hdwallet_features()


@pytest.fixture
def seed(mnemonic_service):
    return mnemonic_service.to_seed(ABANDON_MNEMONIC)


def test_ethereum_known_vector(seed):
    wallet = derivation.derive(seed, ChainType.ETHEREUM, 0)
    assert isinstance(wallet, EthereumWallet)
    assert wallet.derivation_path == "m/44'/60'/0'/0/0"
    assert wallet.address == "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"


@pytest.mark.parametrize("mnemonic", [ABANDON_MNEMONIC, LEGAL_MNEMONIC])
@pytest.mark.parametrize("index", [0, 1, 2, 7, 1000])
def test_ethereum_matches_eth_account(mnemonic_service, mnemonic, index):
    wallet = derivation.derive(mnemonic_service.to_seed(mnemonic), ChainType.ETHEREUM, index)
    reference = EthAccount.from_mnemonic(mnemonic, account_path=f"m/44'/60'/0'/0/{index}")
    assert wallet.address == reference.address
    assert wallet.private_key.reveal() == bytes(reference.key)
    assert wallet.export_private_key() == "0x" + bytes(reference.key).hex()


def test_ethereum_public_key_is_uncompressed(seed):
    wallet = derivation.derive(seed, ChainType.ETHEREUM, 0)
    assert len(wallet.public_key) == 64
    assert derivation.ethereum_address(wallet.public_key) == wallet.address


def test_slip10_ed25519_reference_vector():
    # SLIP-0010 ed25519 测试向量 1
    seed = bytes.fromhex("000102030405060708090a0b0c0d0e0f")
    assert derivation._slip10_derive_ed25519(seed, "m").hex() == (
        "2b4be7f19ee27bbf30c667b642d5f4aa69fd169872f8fc3059c08ebae2eb19e7"
    )
    assert derivation._slip10_derive_ed25519(seed, "m/0'").hex() == (
        "68e0fe46dfb67e368c75379acec591dad19df3cde26e63b93a8e704f1dade7a3"
    )


def test_slip10_rejects_non_hardened_segments():
    with pytest.raises(ValueError):
        derivation._slip10_derive_ed25519(bytes(64), "m/44'/501'/0'/0")


def test_solana_keypair_layout(seed):
    wallet = derivation.derive(seed, ChainType.SOLANA, 3)
    assert isinstance(wallet, SolanaWallet)
    assert wallet.derivation_path == "m/44'/501'/0'/3'"

    secret = wallet.private_key.reveal()
    assert len(secret) == 64
    assert secret[32:] == wallet.public_key
    assert bytes(SigningKey(secret[:32]).verify_key) == wallet.public_key

    assert b58decode(wallet.address) == wallet.public_key
    assert b58decode(wallet.export_private_key()) == secret


def test_solana_derivation_follows_slip10_path(seed):
    wallet = derivation.derive(seed, ChainType.SOLANA, 0)
    private_seed = derivation._slip10_derive_ed25519(seed.reveal(), "m/44'/501'/0'/0'")
    assert wallet.private_key.reveal()[:32] == private_seed


@pytest.mark.parametrize("chain_type", ChainType.ALL)
@pytest.mark.parametrize("index", [0, 1, 5, 2**31 - 1])
def test_derivation_is_deterministic(mnemonic_service, chain_type, index):
    first = derivation.derive(mnemonic_service.to_seed(LEGAL_MNEMONIC), chain_type, index)
    second = derivation.DerivationEngine().derive(
        mnemonic_service.to_seed(LEGAL_MNEMONIC).reveal(), chain_type, index
    )
    assert first == second
    assert first.address == second.address
    assert first.export_private_key() == second.export_private_key()


def test_different_indices_give_different_keys(seed):
    addresses = {derivation.derive(seed, chain, i).address for chain in ChainType.ALL for i in range(3)}
    assert len(addresses) == 6


def test_records_own_separate_key_buffers(seed):
    first = derivation.derive(seed, ChainType.ETHEREUM, 0)
    second = derivation.derive(seed, ChainType.ETHEREUM, 0)
    first.private_key.wipe()
    assert not second.private_key.wiped
    assert second.address == "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"


@pytest.mark.parametrize("chain_type", ["bitcoin", "Ethereum", "", None])
def test_unsupported_chain(seed, chain_type):
    with pytest.raises(UnsupportedChainError):
        derivation.derive(seed, chain_type, 0)


@pytest.mark.parametrize("length", [0, 16, 32, 63, 65])
def test_seed_must_be_64_bytes(length):
    with pytest.raises(InvalidSeedError) as excinfo:
        derivation.derive(bytes(length), ChainType.ETHEREUM, 0)
    assert excinfo.value.length == length


@pytest.mark.parametrize("index", [-1, 2**31, 1.0, "0", True])
def test_index_range(seed, index):
    with pytest.raises(InvalidDerivationIndexError):
        derivation.derive(seed, ChainType.SOLANA, index)


def test_parse_path():
    assert derivation.parse_path("m/44'/60'/0'/0/5") == [
        (44, True),
        (60, True),
        (0, True),
        (0, False),
        (5, False),
    ]
    with pytest.raises(ValueError):
        derivation.parse_path("44'/60'")


@pytest.mark.parametrize("chain_type", ChainType.ALL)
def test_chain_spec_drives_path(seed, chain_type):
    spec = get_chain_spec(chain_type)
    wallet = derivation.derive(seed, chain_type, 4)
    assert wallet.chain_type == spec.chain_type
    assert wallet.derivation_path == spec.path_for(4)
    assert wallet.derivation_path.startswith(f"m/44'/{spec.coin_type}'/0'/")


def test_wallet_records_are_hashable(seed):
    first = derivation.derive(seed, ChainType.SOLANA, 0)
    second = derivation.derive(seed, ChainType.SOLANA, 0)
    assert hash(first) == hash(second)
    assert len({first, second, derivation.derive(seed, ChainType.ETHEREUM, 0)}) == 2


def test_derive_leaves_seed_intact(seed):
    derivation.derive(seed, ChainType.ETHEREUM, 0)
    assert not seed.wiped
    assert len(seed.reveal()) == 64

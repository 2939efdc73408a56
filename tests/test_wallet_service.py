import pytest
from eth_account import Account as EthAccount

from config import ChainType
from errors import DuplicateAccountError, LastAccountError
from wallet_service import WalletService

from vectors import ABANDON_MNEMONIC

EthAccount.enable_unaudited_hdwallet_features()


def test_generate_and_validate_phrase(service):
    phrase = service.generate_phrase()
    assert len(phrase.split()) == 12
    assert service.validate_phrase(phrase)
    assert not service.validate_phrase("not a phrase")
    # 仅生成助记词不会创建账户
    assert service.list_accounts() == ()


def test_full_account_lifecycle(service, registry):
    created = service.create_account()
    assert created.name == "Account 1"
    assert service.validate_phrase(created.mnemonic.phrase)

    imported = service.import_account(ABANDON_MNEMONIC, name="Ledger backup")
    assert service.current_account is imported

    wallet = service.add_wallet(imported.id, ChainType.ETHEREUM)
    assert wallet.address == "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
    assert service.list_wallets(imported.id) == (wallet,)
    assert service.export_private_key(imported.id, 0) == wallet.export_private_key()

    with pytest.raises(DuplicateAccountError):
        service.import_account(ABANDON_MNEMONIC)

    assert service.switch_account(created.id) is created
    service.delete_account(created.id)
    assert service.list_accounts() == (imported,)
    assert service.current_account is imported

    with pytest.raises(LastAccountError):
        service.delete_account(imported.id)


def test_open_file_reloads_state(tmp_path):
    path = tmp_path / "accounts.json"
    service = WalletService.open_file(path)
    account = service.import_account(ABANDON_MNEMONIC)
    service.add_wallet(account.id, ChainType.SOLANA)
    service.add_wallet(account.id, ChainType.ETHEREUM)

    reopened = WalletService.open_file(str(path))
    assert reopened.current_account.id == account.id
    wallets = reopened.list_wallets(account.id)
    assert [w.chain_type for w in wallets] == [ChainType.SOLANA, ChainType.ETHEREUM]
    reference = EthAccount.from_mnemonic(ABANDON_MNEMONIC, account_path="m/44'/60'/0'/0/1")
    assert wallets[1].address == reference.address


def test_open_file_uses_environment_override(tmp_path, monkeypatch):
    path = tmp_path / "env.json"
    monkeypatch.setenv("HDWALLET_REGISTRY", str(path))
    WalletService.open_file().create_account()
    assert path.exists()

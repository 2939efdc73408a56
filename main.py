"""命令行入口：在本地 JSON 注册表上执行账户与钱包操作。"""

import argparse
import logging
import sys
from typing import Dict, List, Optional, Type

from config import ChainType
from errors import (
    AccountNotFoundError,
    DerivationError,
    DuplicateAccountError,
    InvalidDerivationIndexError,
    InvalidMnemonicError,
    InvalidSeedError,
    LastAccountError,
    PersistenceError,
    UnsupportedChainError,
    WalletError,
    WalletNotFoundError,
)
from mnemonic_service import MnemonicService
from models import Account, WalletRecord
from wallet_service import WalletService

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(name)-16.16s %(levelname)-8.8s %(message)s"
LOG_LEVELS = {
    -2: logging.CRITICAL,
    -1: logging.ERROR,
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

# 每种错误对应一条独立提示
ERROR_MESSAGES: Dict[Type[WalletError], str] = {
    InvalidMnemonicError: "助记词无效，请检查单词数量、拼写与顺序",
    InvalidSeedError: "种子长度错误",
    UnsupportedChainError: "不支持的链类型",
    InvalidDerivationIndexError: "派生索引无效",
    DerivationError: "派生失败",
    DuplicateAccountError: "该钱包已存在于账户列表中",
    AccountNotFoundError: "账户不存在",
    WalletNotFoundError: "钱包不存在",
    LastAccountError: "不能删除最后一个账户",
    PersistenceError: "保存失败，操作已在内存中生效，请稍后重试",
}


def log_level(adjust: int) -> int:
    """将 -v/-q 的计数差换算为日志级别。"""
    return LOG_LEVELS[max(min(adjust, max(LOG_LEVELS)), min(LOG_LEVELS))]


def describe_error(exc: WalletError) -> str:
    for error_type, message in ERROR_MESSAGES.items():
        if isinstance(exc, error_type):
            return f"{message}: {exc}"
    return str(exc)


def _format_account(account: Account, current_id: Optional[str]) -> str:
    marker = "*" if account.id == current_id else " "
    return f"{marker} {account.id}  {account.name}  ({len(account.wallets)} 个钱包, 创建于 {account.created_at})"


def _format_wallet(wallet: WalletRecord) -> str:
    return f"#{wallet.derivation_index:<3} {wallet.chain_type:<8} {wallet.derivation_path:<22} {wallet.address}"


def _read_phrase(words: List[str]) -> str:
    if words == ["-"]:
        return sys.stdin.readline()
    return " ".join(words)


def _resolve_account(service: WalletService, account_id: Optional[str]) -> str:
    if account_id:
        return account_id
    current = service.current_account
    if current is None:
        raise AccountNotFoundError(None)
    return current.id


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="hdwallet",
        description="由单一助记词派生以太坊与 Solana 钱包，并按账户管理。",
    )
    ap.add_argument("-v", "--verbose", action="count", default=0, help="输出更多日志")
    ap.add_argument("-q", "--quiet", action="count", default=0, help="减少日志输出")
    ap.add_argument("-r", "--registry", default=None, help="注册表 JSON 文件路径（默认读取 HDWALLET_REGISTRY）")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("generate", help="生成新的 12 词助记词（不创建账户）")

    p = sub.add_parser("validate", help="校验助记词，'-' 表示从标准输入读取")
    p.add_argument("words", nargs="+")

    p = sub.add_parser("create", help="生成助记词并创建账户")
    p.add_argument("-n", "--name", default=None)

    p = sub.add_parser("import", help="导入助记词为新账户，'-' 表示从标准输入读取")
    p.add_argument("-n", "--name", default=None)
    p.add_argument("words", nargs="+")

    sub.add_parser("accounts", help="列出账户，* 为当前账户")

    p = sub.add_parser("switch", help="切换当前账户")
    p.add_argument("account_id")

    p = sub.add_parser("delete", help="删除账户")
    p.add_argument("account_id")

    p = sub.add_parser("add-wallet", help="为账户派生下一个钱包")
    p.add_argument("chain_type", choices=ChainType.ALL)
    p.add_argument("-a", "--account", default=None, help="账户 ID（默认当前账户）")

    p = sub.add_parser("wallets", help="列出账户的钱包")
    p.add_argument("-a", "--account", default=None, help="账户 ID（默认当前账户）")

    p = sub.add_parser("export-key", help="导出钱包私钥")
    p.add_argument("wallet_index", type=int)
    p.add_argument("-a", "--account", default=None, help="账户 ID（默认当前账户）")
    return ap


def run(args: argparse.Namespace) -> int:
    if args.command == "generate":
        print(MnemonicService().generate().phrase)
        return 0

    if args.command == "validate":
        ok = MnemonicService().validate(_read_phrase(args.words))
        print("有效" if ok else "无效")
        return 0 if ok else 1

    service = WalletService.open_file(args.registry)

    if args.command == "create":
        account = service.create_account(args.name)
        print(f"已创建账户 {account.id}（{account.name}）")
        print("请抄写并妥善保管以下助记词，不要截图或分享：")
        print(account.mnemonic.phrase)
    elif args.command == "import":
        account = service.import_account(_read_phrase(args.words), args.name)
        print(f"已导入账户 {account.id}（{account.name}）")
    elif args.command == "accounts":
        current_id = service.store.current_account_id
        for account in service.list_accounts():
            print(_format_account(account, current_id))
    elif args.command == "switch":
        account = service.switch_account(args.account_id)
        print(f"当前账户: {account.id}（{account.name}）")
    elif args.command == "delete":
        service.delete_account(args.account_id)
        print(f"已删除账户 {args.account_id}")
    elif args.command == "add-wallet":
        wallet = service.add_wallet(_resolve_account(service, args.account), args.chain_type)
        print(_format_wallet(wallet))
    elif args.command == "wallets":
        for wallet in service.list_wallets(_resolve_account(service, args.account)):
            print(_format_wallet(wallet))
    elif args.command == "export-key":
        print(service.export_private_key(_resolve_account(service, args.account), args.wallet_index))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=log_level(args.verbose - args.quiet), format=LOG_FORMAT)
    log.debug("command: %s", args.command)
    try:
        return run(args)
    except WalletError as exc:
        print(describe_error(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

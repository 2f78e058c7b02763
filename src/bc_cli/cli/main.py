"""Command-line interface for bc-cli."""

from __future__ import annotations

import argparse
import json
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Sequence

from bc_cli.account import Account
from bc_cli.cli.config import CLIConfig, ConfigError, load_cli_config
from bc_cli.client import Credentials, ServiceClient
from bc_cli.depository import (
    CURRENT_NONCE_PATH,
    DEFAULT_HEADERS,
    download_certificates,
    get_depository,
    list_depositories,
)
from bc_cli.errors import (
    AccountExistsError,
    BCError,
    NonceFetchError,
    NotFoundError,
    ServiceUnavailableError,
)
from bc_cli.printer import AccountRow, print_table
from bc_cli.requests import (
    MARKET_CURRENT_NONCE_PATH,
    build_depository_value,
    build_market_repository_request,
    build_signed_depository_request,
    build_untrusted_depository_request,
)
from bc_cli.wallet import LocalWallet

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_NETWORK_ERROR = 2

_SENSITIVE_FIELDS = (
    "privKey",
    "private_key",
    "idtoken",
    "id_token",
    "refreshtoken",
    "authorization",
    "token",
    "secret",
)


def _cli_version() -> str:
    try:
        return pkg_version("bc-cli")
    except PackageNotFoundError:
        return "0.0.0+local"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bc-cli",
        description="Command line tools for Bestchains",
    )
    parser.add_argument("--version", action="version", version=f"bc-cli {_cli_version()}")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CLI config YAML (default: ~/.bestchains/config.yaml)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification for application services",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show CLI version")
    version.add_argument("--json", action="store_true")

    account = sub.add_parser("account", help="Manage local wallet accounts")
    account_sub = account.add_subparsers(dest="account_command", required=True)
    account_create = account_sub.add_parser("create", help="Create an account")
    account_create.add_argument("--wallet", default=None, help="Wallet path")
    account_create.add_argument(
        "--pk",
        default=None,
        help="The user's own PEM private key; generated when not provided",
    )
    account_create.add_argument("--json", action="store_true")
    account_get = account_sub.add_parser("get", help="List accounts in the wallet")
    account_get.add_argument("--wallet", default=None, help="Wallet path")
    account_get.add_argument("--json", action="store_true")
    account_delete = account_sub.add_parser("delete", help="Delete accounts from the wallet")
    account_delete.add_argument("addresses", nargs="+", metavar="ADDRESS")
    account_delete.add_argument("--wallet", default=None, help="Wallet path")

    depository = sub.add_parser("depository", help="Create and inspect depositories")
    depository_sub = depository.add_subparsers(dest="depository_command", required=True)
    depository_create = depository_sub.add_parser("create", help="Create a depository")
    depository_create.add_argument("--host", default=None, help="Depository server URL")
    depository_create.add_argument("--name", "-n", required=True, help="Depot name")
    depository_create.add_argument("--content-type", "-t", required=True, help="Depot file type")
    depository_create.add_argument("--content-id", required=True, help="Depot file ID (hash)")
    depository_create.add_argument("--platform", "-p", default="", help="Depot source platform")
    trust_group = depository_create.add_mutually_exclusive_group(required=True)
    trust_group.add_argument(
        "--untrusted",
        action="store_true",
        help="Put the value without an account signature",
    )
    trust_group.add_argument("--account", "-a", default=None, help="Account used to sign the value")
    depository_create.add_argument("--wallet", "-w", default=None, help="Wallet path")

    depository_get = depository_sub.add_parser("get", help="Get one or more depositories")
    depository_get.add_argument("kids", nargs="*", metavar="KID")
    depository_get.add_argument("--host", default=None, help="Depository server URL")
    depository_get.add_argument("--from", "-f", dest="from_", type=int, default=0)
    depository_get.add_argument("--size", "-s", type=int, default=10)
    depository_get.add_argument("--kid", "-k", default=None, help="Search depository by kid")
    depository_get.add_argument("--name", "-n", default=None, help="Search depository by name")
    depository_get.add_argument(
        "--content-name", "-c", default=None, help="Search depository by content name"
    )
    depository_get.add_argument("--json", action="store_true")

    depository_download = depository_sub.add_parser(
        "download", help="Download depository certificates"
    )
    depository_download.add_argument("kids", nargs="+", metavar="KID")
    depository_download.add_argument("--host", default=None, help="Depository server URL")
    depository_download.add_argument("--style", default="", help="Certificate style")
    depository_download.add_argument("--output-dir", "-o", default=".")

    market = sub.add_parser("market", help="Market operations")
    market_sub = market.add_subparsers(dest="market_command", required=True)
    repo = market_sub.add_parser("repo", help="Market repositories")
    repo_sub = repo.add_subparsers(dest="repo_command", required=True)
    repo_create = repo_sub.add_parser("create", help="Register a repository")
    repo_create.add_argument("--host", default=None, help="Market server URL")
    repo_create.add_argument("--wallet", "-w", default=None, help="Wallet path")
    repo_create.add_argument("--account", "-a", required=True, help="Account to be used")
    repo_create.add_argument("--repo-url", required=True, help="Repository URL")

    return parser


def _sanitize_error_text(value: str) -> str:
    redacted = re.sub(r"(?i)(bearer\s+)(\S+)", r"\1[REDACTED]", value)
    for field in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf"(?i)({field}\"?\s*[=:]\s*\"?)([^,\s\"]+)",
            r"\1[REDACTED]",
            redacted,
        )
    return redacted


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {_sanitize_error_text(message)}", file=stderr)
    return code


def _print_bc_error(stderr, exc: BCError) -> int:
    if isinstance(exc, NonceFetchError):
        return _print_error(stderr, "nonce error", str(exc), code=EXIT_NETWORK_ERROR)
    if isinstance(exc, ServiceUnavailableError):
        return _print_error(stderr, "service error", str(exc), code=EXIT_NETWORK_ERROR)
    return _print_error(stderr, "account error", str(exc), code=EXIT_VALIDATION_ERROR)


def _open_wallet(args, config: CLIConfig) -> LocalWallet:
    return LocalWallet(args.wallet or config.wallet_dir)


def _build_client(*, host: str | None, fallback: str | None, config: CLIConfig, insecure: bool):
    base_url = host or fallback
    if not base_url:
        return None
    return ServiceClient(
        base_url=base_url,
        credentials=Credentials(id_token=config.id_token),
        verify_tls=not insecure,
    )


def _run_version(*, as_json: bool, stdout) -> int:
    payload = {"cli": "bc-cli", "version": _cli_version()}
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"bc-cli {payload['version']}", file=stdout)
    return EXIT_SUCCESS


def _run_account_create(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        wallet = _open_wallet(args, config)
        account = Account.import_file(args.pk) if args.pk else Account.create()
        path = wallet.store(account, overwrite=False)
    except AccountExistsError as exc:
        return _print_error(stderr, "account error", str(exc), code=EXIT_VALIDATION_ERROR)
    except BCError as exc:
        return _print_bc_error(stderr, exc)

    if args.json:
        print(json.dumps({"address": account.address, "path": str(path)}, sort_keys=True), file=stdout)
    else:
        print(f"account/{account.address} created", file=stdout)
    return EXIT_SUCCESS


def _run_account_get(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        addresses = sorted(_open_wallet(args, config).list())
    except BCError as exc:
        return _print_bc_error(stderr, exc)

    if args.json:
        print(json.dumps({"accounts": addresses}), file=stdout)
    else:
        print_table(stdout, ["ACCOUNT"], [AccountRow(address) for address in addresses])
    return EXIT_SUCCESS


def _run_account_delete(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        wallet = _open_wallet(args, config)
    except BCError as exc:
        return _print_bc_error(stderr, exc)

    # Fail fast: accounts after the first failure are left in place.
    for address in args.addresses:
        try:
            wallet.delete_many(address)
        except NotFoundError as exc:
            return _print_error(stderr, "account error", str(exc), code=EXIT_VALIDATION_ERROR)
        except BCError as exc:
            return _print_bc_error(stderr, exc)
        print(f'account "{address}" deleted', file=stdout)
    return EXIT_SUCCESS


def _run_depository_create(*, args, config: CLIConfig, stdout, stderr) -> int:
    client = _build_client(
        host=args.host, fallback=config.depository_server, config=config, insecure=args.insecure
    )
    if client is None:
        return _print_error(stderr, "config error", "no host provided", code=EXIT_VALIDATION_ERROR)

    value_b64 = build_depository_value(
        name=args.name,
        content_type=args.content_type,
        content_id=args.content_id,
        platform=args.platform,
    )
    try:
        if args.untrusted:
            print("putting untrusted value...", file=stderr)
            request = build_untrusted_depository_request(value_b64)
        else:
            request = build_signed_depository_request(
                wallet=_open_wallet(args, config),
                address=args.account,
                value_b64=value_b64,
                nonce_fetcher=client.nonce_fetcher(CURRENT_NONCE_PATH),
            )
        response = client.post_form(request.path, request.fields)
    except BCError as exc:
        return _print_bc_error(stderr, exc)

    print(response, file=stdout)
    return EXIT_SUCCESS


def _run_depository_get(*, args, config: CLIConfig, stdout, stderr) -> int:
    client = _build_client(
        host=args.host, fallback=config.depository_server, config=config, insecure=args.insecure
    )
    if client is None:
        return _print_error(stderr, "config error", "no host provided", code=EXIT_VALIDATION_ERROR)

    errors: list[str] = []
    if not args.kids:
        try:
            page = list_depositories(
                client,
                from_=args.from_,
                size=args.size,
                kid=args.kid,
                name=args.name,
                content_name=args.content_name,
            )
        except BCError as exc:
            return _print_bc_error(stderr, exc)
        records = page.data
    else:
        records = []
        for kid in args.kids:
            try:
                records.append(get_depository(client, kid))
            except BCError as exc:
                errors.append(f"{kid}: {exc}")

    if args.json:
        print(json.dumps([record.model_dump(by_alias=True) for record in records]), file=stdout)
    else:
        print_table(stdout, DEFAULT_HEADERS, records)
    for error in errors:
        _print_error(stderr, "service error", error, code=EXIT_NETWORK_ERROR)
    return EXIT_NETWORK_ERROR if errors else EXIT_SUCCESS


def _run_depository_download(*, args, config: CLIConfig, stdout, stderr) -> int:
    client = _build_client(
        host=args.host, fallback=config.depository_server, config=config, insecure=args.insecure
    )
    if client is None:
        return _print_error(stderr, "config error", "no host provided", code=EXIT_VALIDATION_ERROR)

    try:
        report = download_certificates(
            client, args.kids, style=args.style, output_dir=args.output_dir
        )
    except OSError as exc:
        return _print_error(stderr, "download error", str(exc), code=EXIT_VALIDATION_ERROR)
    for kid, path in report.downloaded.items():
        print(f"downloaded {kid} -> {path}", file=stdout)
    for kid, error in report.errors.items():
        _print_error(stderr, "download error", f"{kid}: {error}", code=EXIT_NETWORK_ERROR)
    return EXIT_NETWORK_ERROR if report.errors else EXIT_SUCCESS


def _run_market_repo_create(*, args, config: CLIConfig, stdout, stderr) -> int:
    client = _build_client(
        host=args.host, fallback=config.market_server, config=config, insecure=args.insecure
    )
    if client is None:
        return _print_error(stderr, "config error", "no host provided", code=EXIT_VALIDATION_ERROR)

    print(f"creating repository with account {args.account} endorsement", file=stderr)
    try:
        request = build_market_repository_request(
            wallet=_open_wallet(args, config),
            address=args.account,
            repo_url=args.repo_url,
            nonce_fetcher=client.nonce_fetcher(MARKET_CURRENT_NONCE_PATH),
        )
        response = client.post_form(request.path, request.fields)
    except BCError as exc:
        return _print_bc_error(stderr, exc)

    print(response, file=stdout)
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    if args.command == "version":
        return _run_version(as_json=args.json, stdout=stdout)

    if args.command == "account":
        if args.account_command == "create":
            return _run_account_create(args=args, config=config, stdout=stdout, stderr=stderr)
        if args.account_command == "get":
            return _run_account_get(args=args, config=config, stdout=stdout, stderr=stderr)
        if args.account_command == "delete":
            return _run_account_delete(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "depository":
        if args.depository_command == "create":
            return _run_depository_create(args=args, config=config, stdout=stdout, stderr=stderr)
        if args.depository_command == "get":
            return _run_depository_get(args=args, config=config, stdout=stdout, stderr=stderr)
        if args.depository_command == "download":
            return _run_depository_download(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "market" and args.market_command == "repo":
        if args.repo_command == "create":
            return _run_market_repo_create(args=args, config=config, stdout=stdout, stderr=stderr)

    print("unknown command", file=stderr)
    return EXIT_VALIDATION_ERROR


if __name__ == "__main__":
    raise SystemExit(main())

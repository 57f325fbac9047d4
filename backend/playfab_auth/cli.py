"""Command-line front end for the auth services.

Usage:
    uv run python bin/playfab-auth.py login silent
    uv run python bin/playfab-auth.py login email --email a@b.c --password secret --remember-me
    uv run python bin/playfab-auth.py login remembered
    uv run python bin/playfab-auth.py display-name "New Name"
    uv run python bin/playfab-auth.py forget

Configuration comes from PLAYFAB_* environment variables (PLAYFAB_TITLE_ID is required).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import TYPE_CHECKING

from playfab_auth.client import HttpPlayFabClient
from playfab_auth.device import local_device_info
from playfab_auth.display_name import PlayFabDisplayNameService
from playfab_auth.models import AuthType
from playfab_auth.service import PlayFabAuthService
from playfab_auth.settings import PlayFabSettings
from shared.logging import setup_logging
from shared.storage import get_storage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from playfab_auth.client import PlayFabClient
    from playfab_auth.models import PlayFabError
    from shared.storage import KeyValueStore

LOGIN_ROUTES: dict[str, AuthType | None] = {
    "silent": AuthType.SILENT,
    "email": AuthType.EMAIL_AND_PASSWORD,
    "username": AuthType.USERNAME_AND_PASSWORD,
    "register": AuthType.REGISTER_ACCOUNT,
    "remembered": None,  # whatever route is stored
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="playfab-auth", description="Log in to PlayFab from the command line.")
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Authenticate a player")
    login.add_argument("route", choices=sorted(LOGIN_ROUTES))
    login.add_argument("--email", default="")
    login.add_argument("--username", default="")
    login.add_argument("--password", default="")
    login.add_argument("--remember-me", action="store_true", help="Log in without credentials next time")

    commands.add_parser("forget", help="Clear the remembered login")
    commands.add_parser("unlink-device", help="Unlink this device from its silent-login account")

    display_name = commands.add_parser("display-name", help="Show or change the display name")
    display_name.add_argument("name", nargs="?", default=None)

    return parser


async def run(
    args: argparse.Namespace,
    settings: PlayFabSettings,
    client: PlayFabClient,
    storage: KeyValueStore,
) -> int:
    """Execute one parsed command. Return the process exit code."""
    auth = PlayFabAuthService(
        client,
        storage,
        local_device_info(storage),
        settings=settings,
        on_display_authentication=_print_credentials_needed,
        on_playfab_error=_print_error,
    )

    if args.command == "forget":
        auth.clear_remember_me()
        print("Remembered login cleared.")
        return 0

    if args.command == "unlink-device":
        if not await auth.unlink_silent_auth():
            return 1
        print("Device unlinked.")
        return 0

    if args.command == "login":
        auth.email = args.email
        auth.username = args.username
        auth.password = args.password
        if args.remember_me:
            auth.remember_me = True
        result = await auth.authenticate(LOGIN_ROUTES[args.route])
        if result is None:
            return 1
        suffix = " (new account)" if result.newly_created else ""
        print(f"Logged in as {result.playfab_id}{suffix}")
        return 0

    # display-name: log in through the stored route first
    if await auth.authenticate() is None:
        return 1
    names = PlayFabDisplayNameService(client, auth)
    if args.name is None:
        current = await names.get_display_name()
        print(current or "(no display name)")
        return 0
    error = await names.set_display_name(args.name)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1
    print(f"Display name set to {args.name}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = PlayFabSettings()  # type: ignore[call-arg]
    setup_logging(log_dir=settings.log_dir)
    storage = get_storage(settings.storage_backend, settings.storage_path)
    return asyncio.run(_run_with_http_client(args, settings, storage))


async def _run_with_http_client(args: argparse.Namespace, settings: PlayFabSettings, storage: KeyValueStore) -> int:
    async with HttpPlayFabClient(settings) as client:
        return await run(args, settings, client, storage)


def _print_credentials_needed() -> None:
    print("Credentials required: pass --email/--username and --password.", file=sys.stderr)


def _print_error(error: PlayFabError) -> None:
    print(f"Error: {error.error_message or error.error}", file=sys.stderr)

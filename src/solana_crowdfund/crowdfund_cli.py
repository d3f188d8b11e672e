#!/usr/bin/env python3
"""
Crowdfunding CLI

Command-line interface for the crowdfunding program on a Solana cluster.

Usage:
    solana-crowdfund list                          # All campaigns
    solana-crowdfund show <address>                # One campaign
    solana-crowdfund create --title T --goal 10    # Start a campaign
    solana-crowdfund donate <address> 0.5          # Donate SOL
    solana-crowdfund withdraw <address>            # Creator withdraws funds

The program address comes from CROWDFUND_PROGRAM_ID (or --program-id), the
endpoint from --url / --cluster / CROWDFUND_RPC_URL.
"""

import argparse
import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional

from solders.pubkey import Pubkey

from .client import CrowdfundingClient
from .config import CLUSTER_URLS, ClientConfig
from .core.accounts import lamports_to_sol
from .core.campaign import SECONDS_PER_DAY, Campaign, CampaignCategory
from .core.signer import KeypairSigner
from .exceptions import CrowdfundError, OperationResult, capture

DEFAULT_KEYPAIR = Path.home() / ".config" / "solana" / "id.json"


def format_campaign(address: Pubkey, campaign: Campaign, now: Optional[int] = None) -> str:
    """Multi-line summary of a campaign for terminal output."""
    remaining = "⌛ Deadline passed" if campaign.is_expired(now) else f"⏰ {campaign.days_left(now)} days left"
    lines = [
        f"📣 {campaign.title}  [{campaign.category.label}]",
        f"   Address: {address}",
        f"   {campaign.description}",
        f"   Raised: {campaign.raised_sol:.2f} / {campaign.goal_sol:.2f} SOL "
        f"({min(campaign.progress_percent, 100):.0f}%)",
        f"   👥 {campaign.donors_count} donors | {remaining} | "
        f"By: {str(campaign.creator)[:8]}...",
        f"   Status: {campaign.status}",
    ]
    return "\n".join(lines)


class CrowdfundCLI:
    """
    Runs one command against a configured client and prints the outcome.
    """

    def __init__(self, config: ClientConfig, keypair_path: Path = DEFAULT_KEYPAIR):
        self.config = config
        self.keypair_path = keypair_path

    def load_signer(self) -> Optional[KeypairSigner]:
        if not self.keypair_path.exists():
            return None
        return KeypairSigner.from_file(self.keypair_path)

    def client(self, with_signer: bool = False) -> CrowdfundingClient:
        return CrowdfundingClient(self.config, signer=self.load_signer() if with_signer else None)

    @staticmethod
    def report(result: OperationResult) -> bool:
        if not result.ok:
            print(f"❌ {result.error_kind.value}: {result.message}")
        return result.ok

    async def list_campaigns(self) -> bool:
        async with self.client() as client:
            result = await capture(client.fetch_all())
        if not self.report(result):
            return False
        if not result.value:
            print("No campaigns found")
        for address, campaign in result.value:
            print(format_campaign(address, campaign))
            print()
        return True

    async def show(self, address: Pubkey) -> bool:
        async with self.client() as client:
            result = await capture(client.fetch_one(address))
        if not self.report(result):
            return False
        if result.value is None:
            print(f"❌ No campaign at {address}")
            return False
        print(format_campaign(address, result.value))
        return True

    async def donations(self, address: Pubkey) -> bool:
        async with self.client() as client:
            result = await capture(client.fetch_donations(address))
        if not self.report(result):
            return False
        for record_address, info in result.value:
            donated = time.strftime("%Y-%m-%d %H:%M", time.gmtime(info.donated_at))
            print(f"💸 {info.amount_sol} SOL from {info.donor} at {donated} UTC ({record_address})")
        print(f"{len(result.value)} donations")
        return True

    async def create(self, title: str, description: str, goal: str, days: int, category: int) -> bool:
        deadline = int(time.time()) + days * SECONDS_PER_DAY
        print(f"🚀 Creating campaign '{title}' with goal {goal} SOL, {days} days")
        async with self.client(with_signer=True) as client:
            result = await capture(client.create_campaign(title, description, goal, deadline, category))
        if not self.report(result):
            return False
        print(f"✅ Campaign created: {result.value.campaign_address}")
        print(f"   Transaction: {result.value.signature}")
        return True

    async def donate(self, address: Pubkey, amount: str) -> bool:
        print(f"💸 Donating {amount} SOL to {address}")
        async with self.client(with_signer=True) as client:
            result = await capture(client.donate(address, amount))
        if not self.report(result):
            return False
        print(f"✅ Donation confirmed: {result.value}")
        return True

    async def withdraw(self, address: Pubkey, recipient: Optional[Pubkey]) -> bool:
        async with self.client(with_signer=True) as client:
            result = await capture(client.withdraw(address, recipient))
        if not self.report(result):
            return False
        print(f"✅ Funds withdrawn: {result.value}")
        return True

    async def balance(self) -> bool:
        async with self.client(with_signer=True) as client:
            result = await capture(client.get_balance())
        if not self.report(result):
            return False
        print(f"💰 Balance: {lamports_to_sol(result.value):.6f} SOL ({result.value:,} lamports)")
        return True

    async def airdrop(self, amount: str) -> bool:
        print(f"🪂 Requesting {amount} SOL airdrop")
        async with self.client(with_signer=True) as client:
            result = await capture(client.request_airdrop(amount))
        if not self.report(result):
            return False
        print(f"✅ Airdrop confirmed: {result.value}")
        return True


def new_keypair(path: Path) -> None:
    if path.exists():
        raise FileExistsError(f"{path} already exists")
    signer = KeypairSigner.generate()
    signer.save(path)
    print(f"🔑 Wrote keypair {signer.public_key} to {path}")


def pubkey_arg(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except Exception:  # noqa: BLE001
        raise argparse.ArgumentTypeError(f"not a valid address: {value}") from None


def build_config(args) -> ClientConfig:
    environ = dict(os.environ)
    if args.program_id:
        environ["CROWDFUND_PROGRAM_ID"] = args.program_id
    if args.url:
        environ["CROWDFUND_RPC_URL"] = args.url
    elif args.cluster:
        environ.pop("CROWDFUND_RPC_URL", None)
        environ["CROWDFUND_CLUSTER"] = args.cluster
    if args.commitment:
        environ["CROWDFUND_COMMITMENT"] = args.commitment
    if args.timeout is not None:
        environ["CROWDFUND_CONFIRM_TIMEOUT"] = str(args.timeout)
    return ClientConfig.from_env(environ)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solana-crowdfund",
        description="Solana crowdfunding program client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  solana-crowdfund --cluster devnet list
  solana-crowdfund create --title "Open hardware" --description "..." --goal 10 --days 30
  solana-crowdfund donate 9xQe...kZ 0.25
  solana-crowdfund new-keypair ~/.config/solana/id.json
        """
    )
    parser.add_argument('--program-id', help='Crowdfunding program address')
    parser.add_argument('--url', help='RPC endpoint URL')
    parser.add_argument('--cluster', choices=sorted(CLUSTER_URLS), help='Named cluster')
    parser.add_argument('--commitment', choices=['processed', 'confirmed', 'finalized'])
    parser.add_argument('--keypair', type=Path, default=DEFAULT_KEYPAIR, help='Keypair JSON file')
    parser.add_argument('--timeout', type=float, help='Seconds to wait for confirmation')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log RPC activity')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('list', help='List all campaigns')

    show_parser = subparsers.add_parser('show', help='Show one campaign')
    show_parser.add_argument('address', type=pubkey_arg)

    donations_parser = subparsers.add_parser('donations', help='List donations to a campaign')
    donations_parser.add_argument('address', type=pubkey_arg)

    create_parser = subparsers.add_parser('create', help='Create a campaign')
    create_parser.add_argument('--title', required=True)
    create_parser.add_argument('--description', default='')
    create_parser.add_argument('--goal', required=True, help='Goal in SOL')
    create_parser.add_argument('--days', type=int, default=30, help='Days until deadline')
    create_parser.add_argument('--category', default='technology',
                               choices=[c.name.lower() for c in CampaignCategory])

    donate_parser = subparsers.add_parser('donate', help='Donate SOL to a campaign')
    donate_parser.add_argument('address', type=pubkey_arg)
    donate_parser.add_argument('amount', help='Amount in SOL')

    withdraw_parser = subparsers.add_parser('withdraw', help='Withdraw raised funds')
    withdraw_parser.add_argument('address', type=pubkey_arg)
    withdraw_parser.add_argument('--recipient', type=pubkey_arg)

    subparsers.add_parser('balance', help='Show keypair balance')

    airdrop_parser = subparsers.add_parser('airdrop', help='Request test SOL')
    airdrop_parser.add_argument('amount', help='Amount in SOL')

    keypair_parser = subparsers.add_parser('new-keypair', help='Generate a keypair file')
    keypair_parser.add_argument('path', type=Path)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == 'new-keypair':
            new_keypair(args.path.expanduser())
            return 0

        cli = CrowdfundCLI(build_config(args), keypair_path=args.keypair.expanduser())

        if args.command == 'list':
            ok = asyncio.run(cli.list_campaigns())
        elif args.command == 'show':
            ok = asyncio.run(cli.show(args.address))
        elif args.command == 'donations':
            ok = asyncio.run(cli.donations(args.address))
        elif args.command == 'create':
            ok = asyncio.run(cli.create(args.title, args.description, args.goal, args.days,
                                        CampaignCategory[args.category.upper()]))
        elif args.command == 'donate':
            ok = asyncio.run(cli.donate(args.address, args.amount))
        elif args.command == 'withdraw':
            ok = asyncio.run(cli.withdraw(args.address, args.recipient))
        elif args.command == 'balance':
            ok = asyncio.run(cli.balance())
        else:
            ok = asyncio.run(cli.airdrop(args.amount))

    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        return 130

    except (CrowdfundError, OSError, ValueError) as e:
        print(f"❌ Error: {e}")
        return 1

    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())

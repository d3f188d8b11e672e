import struct
import time

import pytest
from solders.pubkey import Pubkey

from solana_crowdfund.client import CrowdfundingClient
from solana_crowdfund.config import ClientConfig
from solana_crowdfund.core.codec import campaign_size, decode_campaign, encode_campaign
from solana_crowdfund.crowdfund_cli import CrowdfundCLI, build_parser, format_campaign, main
from solana_crowdfund.exceptions import (
    ErrorKind,
    PreconditionError,
    ValidationError,
    capture,
)

from conftest import T0, account_json


class DisconnectedWallet:
    """Wallet extension present but no account connected."""

    public_key = None

    async def sign_transaction(self, transaction):
        return transaction


@pytest.fixture
def config(program_id):
    return ClientConfig("http://testnode:8899", program_id, poll_interval=0.001)


@pytest.fixture
def client(config, rpc, signer):
    return CrowdfundingClient(config, signer=signer, rpc=rpc)


class TestTransactions:
    async def test_create_campaign(self, client, node, signer):
        deadline = int(time.time()) + 86_400
        result = await client.create_campaign("Test", "Desc", 10, deadline, 0)

        assert node.methods == ["getLatestBlockhash", "sendTransaction", "getSignatureStatuses"]
        raw = node.sent[0]
        record = decode_campaign(raw[-campaign_size("Test", "Desc"):])
        assert record.creator == signer.public_key
        assert record.goal_amount == 10_000_000_000
        assert record.deadline == deadline
        assert raw[-campaign_size("Test", "Desc") - 1] == 0
        assert bytes(result.campaign_address) in raw
        assert result.signature == node.calls[2][1][0][0]

    async def test_donate(self, client, node):
        signature = await client.donate(Pubkey.new_unique(), "0.5")

        assert node.sent[0][-9:] == b"\x01" + struct.pack("<q", 500_000_000)
        assert signature == node.calls[2][1][0][0]

    async def test_withdraw(self, client, node):
        campaign = Pubkey.new_unique()
        await client.withdraw(campaign)

        assert node.sent[0][-1:] == b"\x02"
        assert bytes(campaign) in node.sent[0]

    @pytest.mark.parametrize("wallet", [None, DisconnectedWallet()])
    async def test_no_signer_fails_before_any_call(self, config, rpc, node, wallet):
        client = CrowdfundingClient(config, signer=wallet, rpc=rpc)

        with pytest.raises(PreconditionError):
            await client.create_campaign("Test", "Desc", 10, int(time.time()) + 60, 0)
        with pytest.raises(PreconditionError):
            await client.donate(Pubkey.new_unique(), 1)
        with pytest.raises(PreconditionError):
            await client.get_balance()
        assert node.calls == []

    async def test_invalid_amount_fails_before_any_call(self, client, node):
        with pytest.raises(ValidationError):
            await client.donate(Pubkey.new_unique(), 0)
        assert node.calls == []

    async def test_configured_confirmation_timeout(self, program_id, rpc, node, signer):
        config = ClientConfig("http://testnode:8899", program_id, poll_interval=0.001, confirm_timeout=0.05)
        node.statuses = [None]
        client = CrowdfundingClient(config, signer=signer, rpc=rpc)

        result = await capture(client.donate(Pubkey.new_unique(), 1))

        assert not result.ok
        assert result.error_kind is ErrorKind.CONFIRMATION_TIMEOUT

    async def test_airdrop_waits_for_confirmation(self, client, node, signer):
        await client.request_airdrop(2)

        assert node.methods == ["requestAirdrop", "getSignatureStatuses"]
        assert node.calls[0][1][:2] == [str(signer.public_key), 2_000_000_000]


class TestReads:
    async def test_fetch_all_and_one(self, client, node, program_id, sample_campaign):
        address = Pubkey.new_unique()
        node.add_program_account(address, encode_campaign(sample_campaign), program_id)
        node.add_program_account(Pubkey.new_unique(), b"garbage", program_id)
        node.accounts[str(address)] = account_json(encode_campaign(sample_campaign), program_id)

        assert await client.fetch_all() == [(address, sample_campaign)]
        assert await client.fetch_one(address) == sample_campaign

    async def test_balance(self, client, node):
        node.balance = 1_500_000_000
        assert await client.get_balance() == 1_500_000_000

    async def test_capture_keeps_value(self, client):
        result = await capture(client.fetch_all())
        assert result.ok
        assert result.value == []


class TestCLI:
    def test_format_campaign(self, sample_campaign):
        text = format_campaign(Pubkey.new_unique(), sample_campaign, now=T0)
        assert "Test" in text
        assert "Technology" in text
        assert "30 days left" in text
        assert "0.00 / 10.00 SOL" in text

    def test_format_expired_campaign(self, sample_campaign):
        text = format_campaign(Pubkey.new_unique(), sample_campaign, now=sample_campaign.deadline + 1)
        assert "Deadline passed" in text
        assert "days left" not in text

    def test_parser(self):
        args = build_parser().parse_args(["create", "--title", "Solar", "--goal", "2.5", "--category", "music"])
        assert args.command == "create"
        assert args.goal == "2.5"
        assert args.days == 30

    def test_parser_rejects_bad_address(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["show", "nope"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_missing_program_id(self, monkeypatch, capsys):
        monkeypatch.delenv("CROWDFUND_PROGRAM_ID", raising=False)
        assert main(["list"]) == 1
        assert "CROWDFUND_PROGRAM_ID" in capsys.readouterr().out

    def test_new_keypair(self, tmp_path, capsys):
        path = tmp_path / "id.json"
        assert main(["new-keypair", str(path)]) == 0
        assert path.exists()
        assert main(["new-keypair", str(path)]) == 1

    def test_list_command(self, monkeypatch, capsys, config, rpc, node, program_id, sample_campaign):
        node.add_program_account(Pubkey.new_unique(), encode_campaign(sample_campaign), program_id)
        monkeypatch.setattr(CrowdfundCLI, "client",
                            lambda self, with_signer=False: CrowdfundingClient(config, rpc=rpc))

        assert main(["--program-id", str(program_id), "--url", "http://testnode:8899", "list"]) == 0
        assert "Test" in capsys.readouterr().out

    def test_donate_without_keypair_reports_precondition(self, monkeypatch, capsys, tmp_path,
                                                         config, rpc, node, program_id):
        keypair = tmp_path / "missing.json"
        monkeypatch.setattr(CrowdfundCLI, "client",
                            lambda self, with_signer=False: CrowdfundingClient(
                                config, signer=self.load_signer() if with_signer else None, rpc=rpc))

        code = main(["--program-id", str(program_id), "--keypair", str(keypair),
                     "donate", str(Pubkey.new_unique()), "0.5"])

        assert code == 1
        assert "precondition" in capsys.readouterr().out
        assert node.calls == []

"""
Component Tests for LedgerClient

web3 is replaced by a mocked AsyncWeb3 so the read/write plumbing and error
mapping can be checked without a node.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_abi import encode
from web3.exceptions import ContractCustomError, TimeExhausted

from core.config import LedgerConfig
from microservices.fundraising_service.clients.ledger_client import (
    TRANSFER_AND_CALL_SIGNATURE,
    UNAUTHORIZED_SELECTOR,
    LedgerClient,
)
from microservices.fundraising_service.protocols import (
    LedgerResponseError,
    TransactionFailureError,
    UnauthorizedError,
    WalletUnavailableError,
)
from tests.contracts.fundraising.data_contract import (
    CREATOR_ADDRESS,
    CREATOR_KEY,
    FUNDRAISING_ADDRESS,
    TOKEN_ADDRESS,
)

TX_HASH = b"\x12" * 32


def make_w3(receipt_status: int = 1) -> MagicMock:
    w3 = MagicMock()
    w3.eth.get_transaction_count = AsyncMock(return_value=4)
    w3.eth.send_raw_transaction = AsyncMock(return_value=TX_HASH)
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={
        "blockNumber": 7,
        "status": receipt_status,
        "gasUsed": 52000,
    })
    return w3


def make_function(build_error=None) -> MagicMock:
    """Contract function whose build_transaction yields a signable legacy tx"""
    function = MagicMock()
    function.build_transaction = AsyncMock(
        return_value={
            "to": FUNDRAISING_ADDRESS,
            "value": 0,
            "gas": 200000,
            "gasPrice": 10**9,
            "nonce": 4,
            "chainId": 11155111,
            "data": "0x",
        },
        side_effect=build_error,
    )
    return function


@pytest.fixture
def ledger_config() -> LedgerConfig:
    return LedgerConfig(fundraising_address=FUNDRAISING_ADDRESS, token_address=TOKEN_ADDRESS)


@pytest.fixture
def client(ledger_config) -> LedgerClient:
    return LedgerClient(ledger_config, private_key=CREATOR_KEY, w3=make_w3())


class TestReads:
    """Reads are validated at the boundary"""

    @pytest.mark.asyncio
    async def test_get_campaigns(self, client):
        client.fundraising = MagicMock()
        client.fundraising.functions.getCampaigns.return_value.call = AsyncMock(return_value=[
            (0, CREATOR_ADDRESS, "Save The Ocean", "Clean water", 1_000_000, True),
            (1, CREATOR_ADDRESS, "Trees", "Plant trees", 2_000_000, False),
        ])
        campaigns = await client.get_campaigns()
        assert [c.id for c in campaigns] == [0, 1]
        assert campaigns[1].active is False

    @pytest.mark.asyncio
    async def test_get_campaigns_malformed(self, client):
        client.fundraising = MagicMock()
        client.fundraising.functions.getCampaigns.return_value.call = AsyncMock(return_value="oops")
        with pytest.raises(LedgerResponseError):
            await client.get_campaigns()

    @pytest.mark.asyncio
    async def test_get_campaign_raised(self, client):
        client.fundraising = MagicMock()
        client.fundraising.functions.getCampaignRaised.return_value.call = AsyncMock(return_value=b"\x09" * 32)
        assert await client.get_campaign_raised(0) == "0x" + "09" * 32

    @pytest.mark.asyncio
    async def test_read_transport_error(self, client):
        client.fundraising = MagicMock()
        client.fundraising.functions.getUserPoints.return_value.call = AsyncMock(side_effect=OSError("refused"))
        with pytest.raises(LedgerResponseError):
            await client.get_user_points(0, CREATOR_ADDRESS)


class TestWrites:
    """Build, sign, send and await finality"""

    @pytest.mark.asyncio
    async def test_transact_returns_receipt(self, client):
        function = make_function()
        receipt = await client._transact(function, "create campaign")

        assert receipt.tx_hash == "0x" + "12" * 32
        assert receipt.block_number == 7
        assert receipt.gas_used == 52000
        tx_params = function.build_transaction.call_args.args[0]
        assert tx_params == {"chainId": 11155111, "nonce": 4, "from": CREATOR_ADDRESS}
        client.w3.eth.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_wallet(self, ledger_config):
        client = LedgerClient(ledger_config, w3=make_w3())
        assert client.account_address is None
        with pytest.raises(WalletUnavailableError):
            await client.claim_faucet()

    @pytest.mark.asyncio
    async def test_reverted_receipt(self, ledger_config):
        client = LedgerClient(ledger_config, private_key=CREATOR_KEY, w3=make_w3(receipt_status=0))
        with pytest.raises(TransactionFailureError) as exc_info:
            await client._transact(make_function(), "claim faucet tokens")
        assert exc_info.value.tx_hash == "0x" + "12" * 32

    @pytest.mark.asyncio
    async def test_unauthorized_revert(self, client):
        data = UNAUTHORIZED_SELECTOR + encode(["address"], [CREATOR_ADDRESS]).hex()
        function = make_function(build_error=ContractCustomError(data, data=data))
        with pytest.raises(UnauthorizedError) as exc_info:
            await client._transact(function, "update campaign status")
        assert exc_info.value.account == CREATOR_ADDRESS
        client.w3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_final_in_time(self, client):
        client.w3.eth.wait_for_transaction_receipt = AsyncMock(side_effect=TimeExhausted("120s"))
        with pytest.raises(TransactionFailureError):
            await client._transact(make_function(), "process donation")

    @pytest.mark.asyncio
    async def test_donate_uses_transfer_and_call(self, client):
        client.token = MagicMock()
        transfer_and_call = client.token.get_function_by_signature.return_value
        transfer_and_call.return_value = make_function()

        await client.donate("0x" + "cc" * 32, "0x0102", (5).to_bytes(32, "big"))

        client.token.get_function_by_signature.assert_called_once_with(TRANSFER_AND_CALL_SIGNATURE)
        args = transfer_and_call.call_args.args
        assert args == (FUNDRAISING_ADDRESS, b"\xcc" * 32, b"\x01\x02", (5).to_bytes(32, "big"))


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_disconnects_provider(self, client):
        client.w3.provider.disconnect = AsyncMock()
        await client.close()
        client.w3.provider.disconnect.assert_awaited_once()

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock

from eth_account import Account
from eth_account.messages import encode_typed_data
from hexbytes import HexBytes
from web3 import Web3

from x402_hook_sdk.core import hook_codec
from x402_hook_sdk.core.authorization import AuthorizationPreparer, build_typed_data, sign_typed_data
from x402_hook_sdk.core.concurrency import gather_or_cancel
from x402_hook_sdk.core.hook_codec import (
    HookKind,
    NftMintHookData,
    RewardPointsHookData,
    Split,
    TransferSplitHookData,
)
from x402_hook_sdk.core.models import ServiceRecord, TokenInfo
from x402_hook_sdk.errors import ConfigurationError, HookDataError, InvalidAmountError, NetworkError

HOOK = Web3.to_checksum_address("0x" + "a1" * 20)
ROUTER = Web3.to_checksum_address("0x" + "c3" * 20)
NFT = Web3.to_checksum_address("0x" + "ab" * 20)
USDC = "0xc01efAaF7C5C61bEbFAeb358E1161b537b8bC0e0"
PAYER = Web3.to_checksum_address("0x" + "11" * 20)
MERCHANT = Web3.to_checksum_address("0x" + "22" * 20)
COMMITMENT = "0x" + "5e" * 32
NOW = 1_700_000_000


def make_service(hook_type=HookKind.NFT_MINT):
    return ServiceRecord(
        id="svc",
        title="Service",
        hook_type=hook_type,
        hook_address=HOOK,
        network="cronos-testnet",
        settlement_router=ROUTER,
        usdc_address=USDC,
        chain_id=338,
    )


class TestAuthorizationPreparer(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.gateway = MagicMock()
        self.gateway.calculate_commitment = AsyncMock(return_value=COMMITMENT)
        self.gateway.get_token_info = AsyncMock(
            return_value=TokenInfo(name="Bridged USDC (Stargate)", version="1")
        )
        self.preparer = AuthorizationPreparer(self.gateway, clock=lambda: NOW + 0.7)

    async def test_prepare_builds_typed_data(self):
        prepared = await self.preparer.prepare(
            make_service(), PAYER, MERCHANT, "0.1", NftMintHookData(NFT), facilitator_fee="0.01"
        )

        typed = prepared.typed_data
        self.assertEqual(typed["primaryType"], "TransferWithAuthorization")
        self.assertEqual(typed["domain"], {
            "name": "Bridged USDC (Stargate)",
            "version": "1",
            "chainId": 338,
            "verifyingContract": USDC,
        })
        self.assertEqual(typed["message"], {
            "from": PAYER,
            "to": ROUTER,
            "value": "100000",
            "validAfter": "0",
            "validBefore": str(NOW + 3600),
            "nonce": COMMITMENT,
        })
        self.assertEqual([f["name"] for f in typed["types"]["TransferWithAuthorization"]],
                         ["from", "to", "value", "validAfter", "validBefore", "nonce"])

        self.assertEqual(prepared.router_address, ROUTER)
        self.assertEqual(prepared.nonce, COMMITMENT)
        self.assertEqual(prepared.hook_data, hook_codec.encode("nft-mint", NftMintHookData(NFT)))
        self.assertEqual(prepared.params.value, 100000)
        self.assertEqual(prepared.params.facilitator_fee, 10000)
        self.assertEqual(prepared.params.pay_to, MERCHANT)
        self.assertEqual(prepared.params.hook, HOOK)
        self.assertEqual(prepared.params.token, USDC)

    async def test_commitment_is_bound_to_every_field(self):
        prepared = await self.preparer.prepare(
            make_service(), PAYER, MERCHANT, "2", NftMintHookData(NFT), validity_seconds=60
        )

        router_address, params = self.gateway.calculate_commitment.await_args.args
        self.assertEqual(router_address, ROUTER)
        self.assertEqual(params.token, USDC)
        self.assertEqual(params.from_address, PAYER)
        self.assertEqual(params.value, 2000000)
        self.assertEqual(params.valid_after, 0)
        self.assertEqual(params.valid_before, NOW + 60)
        self.assertEqual(params.salt, prepared.salt)
        self.assertEqual(params.pay_to, MERCHANT)
        self.assertEqual(params.facilitator_fee, 0)
        self.assertEqual(params.hook, HOOK)
        self.assertEqual(params.hook_data, prepared.hook_data)
        self.gateway.get_token_info.assert_awaited_once_with(USDC)

    async def test_salt_is_fresh_32_bytes(self):
        first = await self.preparer.prepare(make_service(), PAYER, MERCHANT, "1", NftMintHookData(NFT))
        second = await self.preparer.prepare(make_service(), PAYER, MERCHANT, "1", NftMintHookData(NFT))
        self.assertEqual(len(HexBytes(first.salt)), 32)
        self.assertTrue(first.salt.startswith("0x"))
        self.assertNotEqual(first.salt, second.salt)

    async def test_ledger_reads_run_concurrently(self):
        started = []
        both_started = asyncio.Event()

        async def read(name, value):
            started.append(name)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)
            return value

        async def commitment(*args):
            return await read("commitment", COMMITMENT)

        async def token_info(*args):
            return await read("token", TokenInfo("USDC", "2"))

        self.gateway.calculate_commitment = AsyncMock(side_effect=commitment)
        self.gateway.get_token_info = AsyncMock(side_effect=token_info)

        prepared = await self.preparer.prepare(make_service(), PAYER, MERCHANT, "1", NftMintHookData(NFT))
        self.assertEqual(sorted(started), ["commitment", "token"])
        self.assertEqual(prepared.typed_data["domain"]["version"], "2")

    async def test_transfer_split_without_splits_sends_empty_hook_data(self):
        service = make_service(HookKind.TRANSFER_SPLIT)
        prepared = await self.preparer.prepare(service, PAYER, MERCHANT, "1", TransferSplitHookData())
        self.assertEqual(prepared.hook_data, b"")

    async def test_transfer_split_hook_data(self):
        service = make_service(HookKind.TRANSFER_SPLIT)
        params = TransferSplitHookData(splits=(Split(PAYER, 2500), Split(MERCHANT, 7500)))
        prepared = await self.preparer.prepare(service, PAYER, MERCHANT, "1", params)
        self.assertEqual(hook_codec.decode("transfer-split", prepared.hook_data), params)

    async def test_malformed_amount_fails_before_ledger(self):
        with self.assertRaises(InvalidAmountError):
            await self.preparer.prepare(make_service(), PAYER, MERCHANT, "0.0000001", NftMintHookData(NFT))
        with self.assertRaises(InvalidAmountError):
            await self.preparer.prepare(
                make_service(), PAYER, MERCHANT, "1", NftMintHookData(NFT), facilitator_fee="abc"
            )
        self.gateway.calculate_commitment.assert_not_called()

    async def test_hook_kind_mismatch_fails(self):
        with self.assertRaises(HookDataError):
            await self.preparer.prepare(make_service(), PAYER, MERCHANT, "1", RewardPointsHookData(NFT))
        self.gateway.calculate_commitment.assert_not_called()

    async def test_invalid_addresses(self):
        with self.assertRaises(ConfigurationError) as ctx:
            await self.preparer.prepare(make_service(), "0x12", "nope", "1", NftMintHookData(NFT))
        self.assertEqual(ctx.exception.missing_fields, ["payer_address", "pay_to"])

    async def test_non_positive_validity(self):
        with self.assertRaises(ValueError):
            await self.preparer.prepare(
                make_service(), PAYER, MERCHANT, "1", NftMintHookData(NFT), validity_seconds=0
            )

    async def test_ledger_error_propagates(self):
        self.gateway.calculate_commitment.side_effect = NetworkError("rpc down", url="http://rpc")
        with self.assertRaises(NetworkError):
            await self.preparer.prepare(make_service(), PAYER, MERCHANT, "1", NftMintHookData(NFT))
        self.assertEqual(self.gateway.calculate_commitment.await_count, 1)

    async def test_failed_read_cancels_the_other(self):
        cancelled = asyncio.Event()

        async def token_info(*args):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        self.gateway.calculate_commitment.side_effect = NetworkError("rpc down", url="http://rpc")
        self.gateway.get_token_info = AsyncMock(side_effect=token_info)

        with self.assertRaises(NetworkError):
            await self.preparer.prepare(make_service(), PAYER, MERCHANT, "1", NftMintHookData(NFT))
        self.assertTrue(cancelled.is_set())

    async def test_to_dict(self):
        prepared = await self.preparer.prepare(make_service(), PAYER, MERCHANT, "0.5", NftMintHookData(NFT))
        data = prepared.to_dict()
        self.assertEqual(data["params"]["value"], "500000")
        self.assertEqual(data["params"]["from"], PAYER)
        self.assertTrue(data["hookData"].startswith("0x"))


class TestGatherOrCancel(unittest.IsolatedAsyncioTestCase):
    async def test_results_keep_order(self):
        async def value(v, delay):
            await asyncio.sleep(delay)
            return v

        self.assertEqual(await gather_or_cancel(value("a", 0.02), value("b", 0)), ["a", "b"])

    async def test_both_failing_raises_first_and_retrieves_second(self):
        async def fail(message):
            raise ValueError(message)

        with self.assertRaises(ValueError) as ctx:
            await gather_or_cancel(fail("first"), fail("second"))
        self.assertEqual(str(ctx.exception), "first")


class TestSigning(unittest.TestCase):
    def test_signature_recovers_payer(self):
        account = Account.create()
        typed = build_typed_data(
            token_info=TokenInfo("Bridged USDC (Stargate)", "1"),
            chain_id=338,
            token_address=USDC,
            from_address=account.address,
            to_address=ROUTER,
            value=100000,
            valid_after=0,
            valid_before=NOW,
            nonce=COMMITMENT,
        )

        signature = sign_typed_data(typed, account.key.to_0x_hex())

        self.assertTrue(signature.startswith("0x"))
        self.assertEqual(len(signature), 132)
        signable = {
            "types": typed["types"],
            "primaryType": typed["primaryType"],
            "domain": typed["domain"],
            "message": {
                "from": account.address,
                "to": ROUTER,
                "value": 100000,
                "validAfter": 0,
                "validBefore": NOW,
                "nonce": bytes(HexBytes(COMMITMENT)),
            },
        }
        recovered = Account.recover_message(encode_typed_data(full_message=signable), signature=signature)
        self.assertEqual(recovered, account.address)

    def test_signing_leaves_typed_data_untouched(self):
        typed = build_typed_data(TokenInfo("USDC", "2"), 25, USDC, PAYER, ROUTER, 1, 0, NOW, COMMITMENT)
        sign_typed_data(typed, Account.create().key.to_0x_hex())
        self.assertEqual(typed["message"]["value"], "1")
        self.assertEqual(typed["message"]["nonce"], COMMITMENT)


if __name__ == '__main__':
    unittest.main()

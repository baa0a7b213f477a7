import unittest

from hypothesis import given, settings, strategies as st
from web3 import Web3

from x402_hook_sdk.core import hook_codec
from x402_hook_sdk.core.hook_codec import (
    HookKind,
    NftMintHookData,
    RewardPointsHookData,
    Split,
    TransferSplitHookData,
    hook_params_from_dict,
)
from x402_hook_sdk.errors import HookDataDecodeError, HookDataError

NFT = Web3.to_checksum_address("0x" + "ab" * 20)
TOKEN = Web3.to_checksum_address("0x" + "cd" * 20)
ALICE = Web3.to_checksum_address("0x" + "11" * 20)
BOB = Web3.to_checksum_address("0x" + "22" * 20)


def _word(value: int) -> bytes:
    return value.to_bytes(32, "big")


class TestEncode(unittest.TestCase):
    def test_nft_mint_is_single_padded_address(self):
        encoded = hook_codec.encode("nft-mint", NftMintHookData(NFT))
        self.assertEqual(encoded, bytes(12) + bytes.fromhex(NFT[2:]))

    def test_reward_points_is_single_padded_address(self):
        encoded = hook_codec.encode(HookKind.REWARD_POINTS, RewardPointsHookData(TOKEN))
        self.assertEqual(len(encoded), 32)
        self.assertEqual(encoded[12:], bytes.fromhex(TOKEN[2:]))

    def test_transfer_split_layout(self):
        params = TransferSplitHookData(splits=(Split(ALICE, 7000), Split(BOB, 3000)))
        encoded = hook_codec.encode("transfer-split", params)

        words = [encoded[i:i + 32] for i in range(0, len(encoded), 32)]
        self.assertEqual(len(words), 6)
        self.assertEqual(words[0], _word(32))  # offset of the dynamic array
        self.assertEqual(words[1], _word(2))  # array length
        self.assertEqual(words[2][12:], bytes.fromhex(ALICE[2:]))
        self.assertEqual(words[3], _word(7000))
        self.assertEqual(words[4][12:], bytes.fromhex(BOB[2:]))
        self.assertEqual(words[5], _word(3000))

    def test_transfer_split_without_splits_is_empty(self):
        self.assertEqual(hook_codec.encode("transfer-split", TransferSplitHookData()), b"")
        self.assertEqual(hook_codec.encode("transfer-split", TransferSplitHookData(splits=None)), b"")

    def test_kind_mismatch_fails(self):
        with self.assertRaises(HookDataError):
            hook_codec.encode("reward-points", NftMintHookData(NFT))

    def test_unknown_kind_fails(self):
        with self.assertRaises(HookDataError):
            hook_codec.encode("airdrop", NftMintHookData(NFT))

    def test_invalid_address_fails(self):
        with self.assertRaises(HookDataError):
            hook_codec.encode("nft-mint", NftMintHookData("0x1234"))

    def test_bips_out_of_uint16_range_fails(self):
        with self.assertRaises(HookDataError):
            hook_codec.encode("transfer-split", TransferSplitHookData(splits=(Split(ALICE, 70000),)))

    def test_encode_hook_data_uses_params_kind(self):
        self.assertEqual(
            hook_codec.encode_hook_data(RewardPointsHookData(TOKEN)),
            hook_codec.encode("reward-points", RewardPointsHookData(TOKEN)),
        )


class TestDecode(unittest.TestCase):
    def test_round_trip_every_kind(self):
        cases = [
            NftMintHookData(NFT),
            RewardPointsHookData(TOKEN),
            TransferSplitHookData(splits=(Split(ALICE, 5000), Split(BOB, 5000))),
            TransferSplitHookData(),
        ]
        for params in cases:
            with self.subTest(kind=params.kind):
                encoded = hook_codec.encode(params.kind, params)
                self.assertEqual(hook_codec.decode(params.kind, encoded), params)

    def test_decode_accepts_hex_string(self):
        encoded = hook_codec.encode("nft-mint", NftMintHookData(NFT))
        self.assertEqual(hook_codec.decode("nft-mint", "0x" + encoded.hex()), NftMintHookData(NFT))

    def test_decode_checksums_addresses(self):
        lower = NFT.lower()
        encoded = hook_codec.encode("nft-mint", NftMintHookData(lower))
        self.assertEqual(hook_codec.decode("nft-mint", encoded).nft_contract, NFT)

    def test_empty_payload_required_for_single_address_kinds(self):
        for kind in ("nft-mint", "reward-points"):
            for payload in (b"", "0x", ""):
                with self.subTest(kind=kind, payload=payload):
                    with self.assertRaises(HookDataDecodeError):
                        hook_codec.decode(kind, payload)

    def test_empty_payload_is_plain_transfer(self):
        decoded = hook_codec.decode("transfer-split", "0x")
        self.assertEqual(decoded, TransferSplitHookData())
        self.assertEqual(decoded.splits, ())

    def test_truncated_payload_fails(self):
        with self.assertRaises(HookDataDecodeError):
            hook_codec.decode("nft-mint", b"\x00" * 10)

    def test_non_hex_string_fails(self):
        with self.assertRaises(HookDataDecodeError):
            hook_codec.decode("nft-mint", "0xzz")


class TestValidate(unittest.TestCase):
    def test_single_address_variants(self):
        self.assertTrue(hook_codec.validate(NftMintHookData(NFT)))
        self.assertTrue(hook_codec.validate(RewardPointsHookData(TOKEN.lower())))
        self.assertFalse(hook_codec.validate(NftMintHookData("not-an-address")))
        self.assertFalse(hook_codec.validate(RewardPointsHookData("0x123")))

    def test_even_split_is_valid(self):
        params = TransferSplitHookData(splits=(Split(ALICE, 5000), Split(BOB, 5000)))
        self.assertTrue(hook_codec.validate(params))

    def test_split_sum_must_be_exact(self):
        params = TransferSplitHookData(splits=(Split(ALICE, 5000), Split(BOB, 4999)))
        self.assertFalse(hook_codec.validate(params))

    def test_split_recipient_must_be_address(self):
        params = TransferSplitHookData(splits=(Split(ALICE, 5000), Split("0xnope", 5000)))
        self.assertFalse(hook_codec.validate(params))

    def test_empty_splits_are_valid(self):
        self.assertTrue(hook_codec.validate(TransferSplitHookData()))

    @settings(max_examples=50, deadline=None)
    @given(st.lists(st.integers(min_value=0, max_value=10000), min_size=1, max_size=6))
    def test_split_valid_iff_sum_is_total(self, bips):
        recipients = [Web3.to_checksum_address("0x" + f"{i + 1:040x}") for i in range(len(bips))]
        params = TransferSplitHookData(splits=tuple(Split(r, b) for r, b in zip(recipients, bips)))
        self.assertEqual(hook_codec.validate(params), sum(bips) == 10000)


class TestSchemaAndParsing(unittest.TestCase):
    def test_schemas(self):
        self.assertEqual(hook_codec.get_schema("nft-mint").abi_type, "tuple(address)")
        self.assertEqual(hook_codec.get_schema("reward-points").abi_type, "tuple(address)")
        schema = hook_codec.get_schema(HookKind.TRANSFER_SPLIT)
        self.assertEqual(schema.abi_type, "tuple(address recipient, uint16 bips)[]")
        self.assertEqual(schema.to_dict()["hookType"], "transfer-split")

    def test_unknown_schema(self):
        with self.assertRaises(HookDataError):
            hook_codec.get_schema("unknown")

    def test_params_from_dict(self):
        self.assertEqual(
            hook_params_from_dict({"type": "nft-mint", "nftContract": NFT}), NftMintHookData(NFT)
        )
        split = hook_params_from_dict({
            "type": "transfer-split",
            "splits": [{"recipient": ALICE, "bips": 10000}],
        })
        self.assertEqual(split, TransferSplitHookData(splits=(Split(ALICE, 10000),)))
        self.assertEqual(hook_params_from_dict({"type": "transfer-split"}), TransferSplitHookData())

    def test_params_from_dict_missing_field(self):
        with self.assertRaises(HookDataError):
            hook_params_from_dict({"type": "reward-points"})

    def test_to_dict(self):
        params = TransferSplitHookData(splits=(Split(ALICE, 10000),))
        self.assertEqual(
            params.to_dict(),
            {"type": "transfer-split", "splits": [{"recipient": ALICE, "bips": 10000}]},
        )


if __name__ == '__main__':
    unittest.main()

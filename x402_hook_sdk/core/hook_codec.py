"""
Codec for the hookData payload passed to hook contracts.

Every hook type has a fixed ABI layout that the on-chain hook decodes:

- nft-mint:       tuple(address nftContract)
- reward-points:  tuple(address rewardToken)
- transfer-split: tuple(address recipient, uint16 bips)[]

A transfer-split without splits is a plain transfer and carries an empty payload.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Tuple, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError, EncodingError
from hexbytes import HexBytes
from web3 import Web3

from ..constants import TOTAL_BIPS
from ..errors import HookDataDecodeError, HookDataError

SINGLE_ADDRESS_ABI = "(address)"
SPLITS_ABI = "(address,uint16)[]"


class HookKind(str, Enum):
    NFT_MINT = "nft-mint"
    REWARD_POINTS = "reward-points"
    TRANSFER_SPLIT = "transfer-split"

    @classmethod
    def parse(cls, value: Union[str, "HookKind"]) -> "HookKind":
        try:
            return cls(value)
        except ValueError:
            raise HookDataError(f"Unknown hook type: {value}") from None


@dataclass(frozen=True)
class NftMintHookData:
    nft_contract: str
    kind: ClassVar[HookKind] = HookKind.NFT_MINT

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "nftContract": self.nft_contract}


@dataclass(frozen=True)
class RewardPointsHookData:
    reward_token: str
    kind: ClassVar[HookKind] = HookKind.REWARD_POINTS

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "rewardToken": self.reward_token}


@dataclass(frozen=True)
class Split:
    recipient: str
    bips: int

    def to_dict(self) -> Dict[str, Any]:
        return {"recipient": self.recipient, "bips": self.bips}


@dataclass(frozen=True)
class TransferSplitHookData:
    # Absent and empty splits are the same state: a plain transfer.
    splits: Tuple[Split, ...] = ()
    kind: ClassVar[HookKind] = HookKind.TRANSFER_SPLIT

    def __post_init__(self):
        object.__setattr__(self, "splits", tuple(self.splits or ()))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "splits": [s.to_dict() for s in self.splits]}


HookParams = Union[NftMintHookData, RewardPointsHookData, TransferSplitHookData]


@dataclass(frozen=True)
class HookDataSchema:
    hook_type: HookKind
    abi_type: str
    description: str
    example: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "hookType": self.hook_type.value,
            "abiType": self.abi_type,
            "description": self.description,
            "example": self.example,
        }


_SCHEMAS: Dict[HookKind, HookDataSchema] = {
    HookKind.NFT_MINT: HookDataSchema(
        hook_type=HookKind.NFT_MINT,
        abi_type="tuple(address)",
        description="NFT contract address to mint from",
        example='{ "nftContract": "0x..." }',
    ),
    HookKind.REWARD_POINTS: HookDataSchema(
        hook_type=HookKind.REWARD_POINTS,
        abi_type="tuple(address)",
        description="Reward token contract address",
        example='{ "rewardToken": "0x..." }',
    ),
    HookKind.TRANSFER_SPLIT: HookDataSchema(
        hook_type=HookKind.TRANSFER_SPLIT,
        abi_type="tuple(address recipient, uint16 bips)[]",
        description="Array of split recipients with basis points (10000 = 100%). Empty for simple transfer.",
        example='{ "splits": [{ "recipient": "0x...", "bips": 5000 }, { "recipient": "0x...", "bips": 5000 }] }',
    ),
}


def hook_params_from_dict(data: Dict[str, Any]) -> HookParams:
    """Builds hook params from their JSON form (``{"type": ..., ...}``)."""
    kind = HookKind.parse(data.get("type"))
    try:
        if kind is HookKind.NFT_MINT:
            return NftMintHookData(nft_contract=data["nftContract"])
        if kind is HookKind.REWARD_POINTS:
            return RewardPointsHookData(reward_token=data["rewardToken"])
        splits = data.get("splits") or []
        return TransferSplitHookData(
            splits=tuple(Split(recipient=s["recipient"], bips=int(s["bips"])) for s in splits)
        )
    except (KeyError, TypeError, ValueError) as e:
        raise HookDataError(f"Invalid {kind.value} hook data: {e}") from e


def _check_kind(kind: HookKind, params: HookParams) -> None:
    if not isinstance(params, (NftMintHookData, RewardPointsHookData, TransferSplitHookData)):
        raise HookDataError(f"Unsupported hook data params: {type(params).__name__}")
    if params.kind is not kind:
        raise HookDataError(f"Hook data of type {params.kind.value} cannot be encoded as {kind.value}")


def encode(kind: Union[str, HookKind], params: HookParams) -> bytes:
    """
    Encodes hook params to ABI bytes for the given hook type.
    """
    kind = HookKind.parse(kind)
    _check_kind(kind, params)

    try:
        if isinstance(params, NftMintHookData):
            return abi_encode([SINGLE_ADDRESS_ABI], [(params.nft_contract,)])
        if isinstance(params, RewardPointsHookData):
            return abi_encode([SINGLE_ADDRESS_ABI], [(params.reward_token,)])
        if not params.splits:
            return b""
        return abi_encode([SPLITS_ABI], [[(s.recipient, s.bips) for s in params.splits]])
    except EncodingError as e:
        raise HookDataError(f"Cannot encode {kind.value} hook data: {e}") from e


def encode_hook_data(params: HookParams) -> bytes:
    return encode(params.kind, params)


def _to_bytes(hook_data: Union[bytes, str]) -> bytes:
    if isinstance(hook_data, (bytes, bytearray)):
        return bytes(hook_data)
    if hook_data in ("", "0x"):
        return b""
    try:
        return bytes(HexBytes(hook_data))
    except (TypeError, ValueError) as e:
        raise HookDataDecodeError(f"hookData is not valid hex: {e}") from e


def decode(kind: Union[str, HookKind], hook_data: Union[bytes, str]) -> HookParams:
    """
    Decodes ABI bytes (or a 0x hex string) back to hook params.

    An empty payload is an error for the single-address hooks and a plain
    transfer for transfer-split.
    """
    kind = HookKind.parse(kind)
    data = _to_bytes(hook_data)

    if not data:
        if kind is HookKind.TRANSFER_SPLIT:
            return TransferSplitHookData()
        raise HookDataDecodeError(f"{kind.value} payload required for this hook kind")

    try:
        if kind is HookKind.TRANSFER_SPLIT:
            (raw_splits,) = abi_decode([SPLITS_ABI], data)
            return TransferSplitHookData(splits=tuple(
                Split(recipient=Web3.to_checksum_address(recipient), bips=int(bips))
                for recipient, bips in raw_splits
            ))
        ((address,),) = abi_decode([SINGLE_ADDRESS_ABI], data)
    except DecodingError as e:
        raise HookDataDecodeError(f"Cannot decode {kind.value} hook data: {e}") from e

    address = Web3.to_checksum_address(address)
    if kind is HookKind.NFT_MINT:
        return NftMintHookData(nft_contract=address)
    return RewardPointsHookData(reward_token=address)


def get_schema(kind: Union[str, HookKind]) -> HookDataSchema:
    return _SCHEMAS[HookKind.parse(kind)]


def _is_address(value: Any) -> bool:
    return isinstance(value, str) and Web3.is_address(value)


def validate(params: HookParams) -> bool:
    """
    Checks hook params before encoding.

    Splits are valid when empty, or when every recipient is an address and
    the bips add up to exactly 10000.
    """
    if isinstance(params, NftMintHookData):
        return _is_address(params.nft_contract)
    if isinstance(params, RewardPointsHookData):
        return _is_address(params.reward_token)
    if isinstance(params, TransferSplitHookData):
        if not params.splits:
            return True
        all_valid = all(_is_address(s.recipient) for s in params.splits)
        return all_valid and sum(s.bips for s in params.splits) == TOTAL_BIPS
    return False

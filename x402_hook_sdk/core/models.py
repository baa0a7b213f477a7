from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hexbytes import HexBytes

from .hook_codec import HookKind


def _hex(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    return value


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return _hex(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) > 2**53:
        return str(value)
    return value


@dataclass(frozen=True)
class SupportingContracts:
    nft_contract: Optional[str] = None
    reward_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["SupportingContracts"]:
        if not data:
            return None
        return cls(nft_contract=data.get("nftContract"), reward_token=data.get("rewardToken"))

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        if self.nft_contract:
            data["nftContract"] = self.nft_contract
        if self.reward_token:
            data["rewardToken"] = self.reward_token
        return data


@dataclass(frozen=True)
class ServiceDefaults:
    payment_amount: str
    facilitator_fee: str
    pay_to: str

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ServiceDefaults"]:
        if not data:
            return None
        return cls(
            payment_amount=str(data.get("paymentAmount", "")),
            facilitator_fee=str(data.get("facilitatorFee", "0")),
            pay_to=data.get("payTo", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paymentAmount": self.payment_amount,
            "facilitatorFee": self.facilitator_fee,
            "payTo": self.pay_to,
        }


@dataclass
class ServiceConfig:
    """
    Configuration supplied by a service provider when registering a hook service.

    Required: id, hook_type, hook_address, network. They are checked by the
    registry so that every missing field is reported at once.
    """

    id: Optional[str]
    title: str = ""
    hook_type: Optional[str] = None
    hook_address: Optional[str] = None
    network: Optional[str] = None
    description: Optional[str] = None
    supporting_contracts: Optional[SupportingContracts] = None
    defaults: Optional[ServiceDefaults] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceConfig":
        return cls(
            id=data.get("id"),
            title=data.get("title", ""),
            hook_type=data.get("hookType"),
            hook_address=data.get("hookAddress"),
            network=data.get("network"),
            description=data.get("description"),
            supporting_contracts=SupportingContracts.from_dict(data.get("supportingContracts")),
            defaults=ServiceDefaults.from_dict(data.get("defaults")),
        )


@dataclass(frozen=True)
class ServiceRecord:
    """A registered service with the on-chain data resolved at registration."""

    id: str
    title: str
    hook_type: HookKind
    hook_address: str
    network: str
    settlement_router: str
    usdc_address: str
    chain_id: int
    description: Optional[str] = None
    supporting_contracts: Optional[SupportingContracts] = None
    defaults: Optional[ServiceDefaults] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "hookType": self.hook_type.value,
            "hookAddress": self.hook_address,
            "network": self.network,
            "settlementRouter": self.settlement_router,
            "usdcAddress": self.usdc_address,
            "chainId": self.chain_id,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.supporting_contracts:
            data["supportingContracts"] = self.supporting_contracts.to_dict()
        if self.defaults:
            data["defaults"] = self.defaults.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceRecord":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            hook_type=HookKind.parse(data["hookType"]),
            hook_address=data["hookAddress"],
            network=data["network"],
            settlement_router=data["settlementRouter"],
            usdc_address=data["usdcAddress"],
            chain_id=int(data["chainId"]),
            description=data.get("description"),
            supporting_contracts=SupportingContracts.from_dict(data.get("supportingContracts")),
            defaults=ServiceDefaults.from_dict(data.get("defaults")),
        )


@dataclass(frozen=True)
class TokenInfo:
    name: str
    version: str


@dataclass(frozen=True)
class CommitmentParams:
    token: str
    from_address: str
    value: int
    valid_after: int
    valid_before: int
    salt: str
    pay_to: str
    facilitator_fee: int
    hook: str
    hook_data: bytes


@dataclass(frozen=True)
class TransferParams:
    token: str
    from_address: str
    value: int
    valid_after: int
    valid_before: int
    pay_to: str
    facilitator_fee: int
    hook: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "from": self.from_address,
            "value": str(self.value),
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "payTo": self.pay_to,
            "facilitatorFee": str(self.facilitator_fee),
            "hook": self.hook,
        }


@dataclass(frozen=True)
class PreparedAuthorization:
    """
    A transfer authorization ready to be signed.

    Not persisted; the ledger rejects it once valid_before has passed.
    """

    typed_data: Dict[str, Any]
    router_address: str
    nonce: str
    salt: str
    hook_data: bytes
    params: TransferParams

    def to_dict(self) -> Dict[str, Any]:
        return {
            "typedData": self.typed_data,
            "routerAddress": self.router_address,
            "nonce": self.nonce,
            "salt": self.salt,
            "hookData": _hex(self.hook_data),
            "params": self.params.to_dict(),
        }


@dataclass(frozen=True)
class TransactionEvent:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": _jsonable(self.args)}


@dataclass(frozen=True)
class TransactionOutcome:
    success: bool
    tx_hash: str
    block_number: int
    events: List[TransactionEvent] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "txHash": self.tx_hash,
            "blockNumber": self.block_number,
            "events": [e.to_dict() for e in self.events],
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class AgentCard:
    name: str
    url: str
    services: List[ServiceRecord] = field(default_factory=list)
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "url": self.url, "services": [s.to_dict() for s in self.services]}
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentCard":
        return cls(
            name=data.get("name", ""),
            url=data.get("url", ""),
            services=[ServiceRecord.from_dict(s) for s in data.get("services") or []],
            description=data.get("description"),
        )


@dataclass(frozen=True)
class DiscoveredServices:
    server_url: str
    agent_card: AgentCard
    services: List[ServiceRecord]
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "serverUrl": self.server_url,
            "agentCard": self.agent_card.to_dict(),
            "services": [s.to_dict() for s in self.services],
        }
        if self.error is not None:
            data["error"] = self.error
        return data

import copy
import logging
import secrets
import time
from typing import Any, Callable, Dict, Optional

from eth_account import Account
from hexbytes import HexBytes
from web3 import Web3

from ..constants import DEFAULT_VALIDITY_SECONDS, USDC_DECIMALS
from ..errors import ConfigurationError
from . import hook_codec
from .concurrency import gather_or_cancel
from .hook_codec import HookParams
from .models import CommitmentParams, PreparedAuthorization, ServiceRecord, TokenInfo, TransferParams
from .units import format_units, parse_units

logger = logging.getLogger(__name__)

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

TRANSFER_WITH_AUTHORIZATION_TYPE = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "validAfter", "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce", "type": "bytes32"},
]


def generate_salt() -> str:
    return HexBytes(secrets.token_bytes(32)).to_0x_hex()


def build_typed_data(
    token_info: TokenInfo,
    chain_id: int,
    token_address: str,
    from_address: str,
    to_address: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: str,
) -> Dict[str, Any]:
    """
    Builds the EIP-712 TransferWithAuthorization structure for the stablecoin.

    Numeric message fields are decimal strings so they survive JSON transport.
    """
    return {
        "types": {
            "EIP712Domain": list(EIP712_DOMAIN_TYPE),
            "TransferWithAuthorization": list(TRANSFER_WITH_AUTHORIZATION_TYPE),
        },
        "primaryType": "TransferWithAuthorization",
        "domain": {
            "name": token_info.name,
            "version": token_info.version,
            "chainId": chain_id,
            "verifyingContract": token_address,
        },
        "message": {
            "from": from_address,
            "to": to_address,
            "value": str(value),
            "validAfter": str(valid_after),
            "validBefore": str(valid_before),
            "nonce": nonce,
        },
    }


def sign_typed_data(typed_data: Dict[str, Any], private_key: str) -> str:
    """
    Signs a prepared TransferWithAuthorization with a local key.
    Returns the 65-byte signature as 0x hex.
    """
    signable = copy.deepcopy(typed_data)
    message = signable["message"]
    for key in ("value", "validAfter", "validBefore"):
        message[key] = int(message[key])
    message["nonce"] = bytes(HexBytes(message["nonce"]))
    signable["domain"]["chainId"] = int(signable["domain"]["chainId"])

    signed = Account.sign_typed_data(private_key, full_message=signable)
    return HexBytes(signed.signature).to_0x_hex()


class AuthorizationPreparer:
    """
    Assembles a signable, replay-protected transfer authorization for a hook service.
    """

    def __init__(self, gateway, clock: Callable[[], float] = time.time):
        self.gateway = gateway
        self.clock = clock

    async def prepare(
        self,
        service: ServiceRecord,
        payer_address: str,
        pay_to: str,
        payment_amount: str,
        hook_data_params: HookParams,
        facilitator_fee: str = "0",
        validity_seconds: Optional[int] = None,
    ) -> PreparedAuthorization:
        invalid = [
            name for name, address in (("payer_address", payer_address), ("pay_to", pay_to))
            if not Web3.is_address(address)
        ]
        if invalid:
            raise ConfigurationError(f"Invalid addresses: {', '.join(invalid)}", invalid)

        if validity_seconds is None:
            validity_seconds = DEFAULT_VALIDITY_SECONDS
        if validity_seconds <= 0:
            raise ValueError("validity_seconds must be positive")

        hook_data = hook_codec.encode(service.hook_type, hook_data_params)
        salt = generate_salt()

        valid_after = 0
        valid_before = int(self.clock()) + validity_seconds

        value = parse_units(payment_amount, USDC_DECIMALS)
        fee = parse_units(facilitator_fee or "0", USDC_DECIMALS)

        commitment_params = CommitmentParams(
            token=service.usdc_address,
            from_address=payer_address,
            value=value,
            valid_after=valid_after,
            valid_before=valid_before,
            salt=salt,
            pay_to=pay_to,
            facilitator_fee=fee,
            hook=service.hook_address,
            hook_data=hook_data,
        )
        # Independent reads; both are needed before the domain can be built
        nonce, token_info = await gather_or_cancel(
            self.gateway.calculate_commitment(service.settlement_router, commitment_params),
            self.gateway.get_token_info(service.usdc_address),
        )

        typed_data = build_typed_data(
            token_info=token_info,
            chain_id=service.chain_id,
            token_address=service.usdc_address,
            from_address=payer_address,
            to_address=service.settlement_router,
            value=value,
            valid_after=valid_after,
            valid_before=valid_before,
            nonce=nonce,
        )
        logger.info(
            "Prepared authorization for service %s: %s USDC from %s, fee %s, valid until %d",
            service.id, format_units(value), payer_address, format_units(fee), valid_before,
        )

        return PreparedAuthorization(
            typed_data=typed_data,
            router_address=service.settlement_router,
            nonce=nonce,
            salt=salt,
            hook_data=hook_data,
            params=TransferParams(
                token=service.usdc_address,
                from_address=payer_address,
                value=value,
                valid_after=valid_after,
                valid_before=valid_before,
                pay_to=pay_to,
                facilitator_fee=fee,
                hook=service.hook_address,
            ),
        )

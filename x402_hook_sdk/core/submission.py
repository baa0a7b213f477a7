import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from eth_abi.exceptions import DecodingError
from eth_utils import event_abi_to_log_topic
from hexbytes import HexBytes
from web3.exceptions import Web3Exception

from ..constants import SIGNATURE_HEX_LENGTH, SIGNATURE_PREFIX
from ..contracts import SETTLEMENT_ROUTER, load_abi
from ..errors import SignatureError, TransactionError
from .models import PreparedAuthorization, TransactionEvent, TransactionOutcome

logger = logging.getLogger(__name__)

UNKNOWN_EVENT = "Unknown"

_HEX_RE = re.compile(r"[0-9a-fA-F]+")
_REVERT_PATTERNS = (
    re.compile(r'reason="([^"]+)"'),
    re.compile(r"execution reverted: ([^'\"\n]+)"),
)


def validate_signature(signature: Any) -> bool:
    """
    Checks the shape of a 65-byte hex signature: "0x" followed by 130 hex digits.
    """
    if not isinstance(signature, str) or not signature.startswith(SIGNATURE_PREFIX):
        return False
    hex_part = signature[len(SIGNATURE_PREFIX):]
    return len(hex_part) == SIGNATURE_HEX_LENGTH and bool(_HEX_RE.fullmatch(hex_part))


def extract_revert_reason(message: str) -> Optional[str]:
    for pattern in _REVERT_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1).strip()
    return None


def _router_event_topics() -> Dict[bytes, str]:
    return {
        event_abi_to_log_topic(item): item["name"]
        for item in load_abi(SETTLEMENT_ROUTER)
        if item.get("type") == "event" and not item.get("anonymous")
    }


def parse_receipt_logs(router, logs: Iterable[Any]) -> List[TransactionEvent]:
    """
    Turns receipt logs into events using the router ABI.

    Every log yields exactly one event; logs that match no known event, or
    fail to decode, become an "Unknown" event with no args.
    """
    topics = _router_event_topics()
    events = []
    for log in logs:
        name = None
        log_topics = log.get("topics") or []
        if log_topics:
            name = topics.get(bytes(HexBytes(log_topics[0])))
        if name is None:
            events.append(TransactionEvent(UNKNOWN_EVENT, {}))
            continue
        try:
            parsed = getattr(router.events, name)().process_log(log)
        except (Web3Exception, DecodingError, ValueError, KeyError) as e:
            logger.debug("Could not decode %s log: %s", name, e)
            events.append(TransactionEvent(UNKNOWN_EVENT, {}))
            continue
        events.append(TransactionEvent(parsed["event"], dict(parsed["args"])))
    return events


class SettlementSubmitter:
    """
    Submits a signed authorization to the settlement router.

    The transaction is sent by whoever holds signer_private_key, which need
    not be the payer (facilitator pattern).
    """

    def __init__(self, gateway):
        self.gateway = gateway

    async def submit(
        self,
        prepared: PreparedAuthorization,
        signature: str,
        signer_private_key: str,
    ) -> TransactionOutcome:
        if not validate_signature(signature):
            raise SignatureError(
                "Invalid signature format",
                "Signature must be a 65-byte hex string starting with 0x",
            )

        try:
            receipt = await self.gateway.settle_and_execute(
                prepared.router_address,
                prepared.params,
                prepared.nonce,
                signature,
                prepared.salt,
                prepared.hook_data,
                signer_private_key,
            )
        except Exception as e:
            message = str(getattr(e, "message", None) or e)
            revert_reason = extract_revert_reason(message)
            logger.error("Settlement failed on router %s: %s", prepared.router_address, message)
            raise TransactionError(f"Transaction failed: {message}", revert_reason=revert_reason) from e

        tx_hash = HexBytes(receipt["transactionHash"]).to_0x_hex()
        if receipt.get("status", 1) == 0:
            logger.error("Settlement transaction %s reverted", tx_hash)
            raise TransactionError(f"Transaction reverted: {tx_hash}", tx_hash=tx_hash)

        events = parse_receipt_logs(
            self.gateway.router_contract(prepared.router_address), receipt.get("logs") or []
        )
        logger.info(
            "Settlement %s mined in block %s with %d events",
            tx_hash, receipt["blockNumber"], len(events),
        )
        return TransactionOutcome(
            success=True,
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            events=events,
        )

import logging
from typing import Any, Optional

from hexbytes import HexBytes
from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError
from web3.middleware import ExtraDataToPOAMiddleware

from ..core.concurrency import gather_or_cancel
from ..core.models import CommitmentParams, TokenInfo, TransferParams
from ..errors import ContractNotFoundError, NetworkError
from . import EIP3009_TOKEN, HOOK, SETTLEMENT_ROUTER, load_abi

logger = logging.getLogger(__name__)


class LedgerGateway:
    """
    Async client for the contracts involved in a hook payment: the hook itself,
    its settlement router, and the EIP-3009 stablecoin.

    Timeouts and retries are left to the underlying web3 provider.
    """

    def __init__(self, rpc_url: str, receipt_timeout: float = 120):
        self.rpc_url = rpc_url
        self.receipt_timeout = receipt_timeout

        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        self.hook_abi = load_abi(HOOK)
        self.router_abi = load_abi(SETTLEMENT_ROUTER)
        self.token_abi = load_abi(EIP3009_TOKEN)

    def _contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi)

    def router_contract(self, router_address: str):
        return self._contract(router_address, self.router_abi)

    async def get_settlement_router(self, hook_address: str) -> str:
        """
        Reads the settlement router a hook contract is bound to.
        """
        hook = self._contract(hook_address, self.hook_abi)
        try:
            router = await hook.functions.settlementRouter().call()
        except (ContractLogicError, BadFunctionCallOutput) as e:
            logger.warning("No hook contract answered at %s: %s", hook_address, e)
            raise ContractNotFoundError(hook_address) from e
        except Exception as e:
            raise NetworkError(f"Failed to read settlement router: {e}", url=self.rpc_url) from e
        return AsyncWeb3.to_checksum_address(router)

    async def calculate_commitment(self, router_address: str, params: CommitmentParams) -> str:
        """
        Asks the router for the commitment bound to every authorization field.
        The result is used as the EIP-3009 nonce.
        """
        router = self.router_contract(router_address)
        try:
            commitment = await router.functions.calculateCommitment(
                AsyncWeb3.to_checksum_address(params.token),
                AsyncWeb3.to_checksum_address(params.from_address),
                params.value,
                params.valid_after,
                params.valid_before,
                HexBytes(params.salt),
                AsyncWeb3.to_checksum_address(params.pay_to),
                params.facilitator_fee,
                AsyncWeb3.to_checksum_address(params.hook),
                params.hook_data,
            ).call()
        except Exception as e:
            raise NetworkError(f"Failed to calculate commitment: {e}", url=self.rpc_url) from e
        return HexBytes(commitment).to_0x_hex()

    async def get_token_info(self, token_address: str) -> TokenInfo:
        token = self._contract(token_address, self.token_abi)
        try:
            name, version = await gather_or_cancel(
                token.functions.name().call(),
                token.functions.version().call(),
            )
        except Exception as e:
            raise NetworkError(f"Failed to read token info: {e}", url=self.rpc_url) from e
        return TokenInfo(name=name, version=version)

    async def contract_exists(self, address: str) -> bool:
        try:
            code = await self.w3.eth.get_code(AsyncWeb3.to_checksum_address(address))
        except Exception as e:
            logger.debug("get_code failed for %s: %s", address, e)
            return False
        return len(code) > 0

    async def settle_and_execute(
        self,
        router_address: str,
        params: TransferParams,
        nonce: str,
        signature: str,
        salt: str,
        hook_data: bytes,
        private_key: str,
        gas: Optional[int] = None,
    ) -> Any:
        """
        Sends settleAndExecute() from the facilitator account and waits for the receipt.
        Errors are raised as-is; the caller classifies them.
        """
        router = self.router_contract(router_address)
        account = self.w3.eth.account.from_key(private_key)

        tx_nonce, gas_price, chain_id = await gather_or_cancel(
            self.w3.eth.get_transaction_count(account.address),
            self.w3.eth.gas_price,
            self.w3.eth.chain_id,
        )
        tx_fields = {
            "from": account.address,
            "chainId": chain_id,
            "nonce": tx_nonce,
            "gasPrice": gas_price,
        }
        if gas:
            tx_fields["gas"] = gas

        tx = await router.functions.settleAndExecute(
            AsyncWeb3.to_checksum_address(params.token),
            AsyncWeb3.to_checksum_address(params.from_address),
            params.value,
            params.valid_after,
            params.valid_before,
            HexBytes(nonce),
            HexBytes(signature),
            HexBytes(salt),
            AsyncWeb3.to_checksum_address(params.pay_to),
            params.facilitator_fee,
            AsyncWeb3.to_checksum_address(params.hook),
            hook_data,
        ).build_transaction(tx_fields)

        signed_tx = self.w3.eth.account.sign_transaction(tx, private_key)
        logger.info("Sending settleAndExecute to router %s from %s", router_address, account.address)
        tx_hash = await self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)

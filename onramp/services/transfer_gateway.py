"""
On-chain transfer gateways.

A gateway sends ``amount_base_units`` of a token to a Starknet wallet and
returns the transaction hash, or raises ``TransferError``.
"""

import logging
import re
import secrets
import time
from dataclasses import dataclass

import requests

from onramp.domain.tokens import get_token
from onramp.errors import TransferError

logger = logging.getLogger(__name__)

TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{1,64}$")

PENDING = "PENDING"
ACCEPTED_STATUSES = frozenset({"ACCEPTED_ON_L2", "ACCEPTED_ON_L1"})
REJECTED_STATUSES = frozenset({"REJECTED", "REVERTED"})


@dataclass(frozen=True)
class TransferResult:
    transaction_hash: str
    network: str
    gateway: str


class SimulatedTransferGateway:
    """Development gateway: no funds move, a random hash is returned."""

    name = "simulated"

    def __init__(self, network="sepolia"):
        self.network = network

    def send(self, *, token_symbol, wallet_address, amount_base_units, reference):
        logger.info(
            "Simulating transfer",
            extra={
                "token_symbol": token_symbol,
                "wallet_address": wallet_address,
                "amount_base_units": amount_base_units,
                "reference": reference,
            },
        )
        return TransferResult(f"0x{secrets.token_hex(32)}", self.network, self.name)


class RelayTransferGateway:
    """
    Hands the transfer to a custodial relay service that holds the hot wallet key.

    The relay answers ``{"transactionHash": "0x..."}`` once the transfer has
    been submitted, then reports its on-chain status at
    ``GET /transfers/<hash>``. ``send`` only returns once the network has
    accepted the transaction.
    """

    name = "relay"

    def __init__(self, base_url, api_key=None, network="mainnet", timeout=60, session=None,
                 confirmation_timeout=180, poll_interval=5, sleep=time.sleep, clock=time.monotonic):
        if not base_url:
            raise TransferError("Transfer relay URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.network = network
        self.timeout = timeout
        self.session = session or requests.Session()
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    def send(self, *, token_symbol, wallet_address, amount_base_units, reference):
        token = get_token(token_symbol)
        if token is None:
            raise TransferError(f"Unsupported token {token_symbol}")

        body = self._call(
            "POST",
            f"{self.base_url}/transfers",
            json={
                "network": self.network,
                "tokenAddress": token.contract_address,
                "recipient": wallet_address,
                "amount": str(amount_base_units),
                "reference": reference,
            },
        )
        tx_hash = body.get("transactionHash") if isinstance(body, dict) else None
        if not tx_hash or not TX_HASH_PATTERN.fullmatch(tx_hash):
            raise TransferError(f"Transfer relay returned no valid transaction hash: {body!r}")

        self.wait_for_acceptance(tx_hash)
        return TransferResult(tx_hash, self.network, self.name)

    def transaction_status(self, tx_hash):
        body = self._call("GET", f"{self.base_url}/transfers/{tx_hash}")
        status = body.get("status") if isinstance(body, dict) else None
        return str(status or PENDING).upper()

    def wait_for_acceptance(self, tx_hash):
        """Poll the relay until the transaction is accepted; raise ``TransferError`` if rejected or too slow."""
        deadline = self._clock() + self.confirmation_timeout
        while True:
            status = self.transaction_status(tx_hash)
            if status in ACCEPTED_STATUSES:
                logger.info("Transfer accepted on-chain", extra={"transaction_hash": tx_hash, "status": status})
                return status
            if status in REJECTED_STATUSES:
                raise TransferError(f"Transfer {tx_hash} was {status.lower()} by the network")
            if self._clock() >= deadline:
                raise TransferError(
                    f"Transfer {tx_hash} not accepted within {self.confirmation_timeout}s (last status {status})"
                )
            self._sleep(self.poll_interval)

    def _call(self, method, url, **kwargs):
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise TransferError(f"Transfer relay request failed: {e}") from e
        except ValueError as e:
            raise TransferError("Transfer relay returned malformed JSON") from e


def build_transfer_gateway(config, flags):
    if flags.ONCHAIN_TRANSFERS:
        return RelayTransferGateway(
            config.get("TRANSFER_RELAY_URL"),
            api_key=config.get("TRANSFER_RELAY_API_KEY"),
            network=config.get("STARKNET_NETWORK", "mainnet"),
            timeout=config.get("TRANSFER_TIMEOUT", 60),
            confirmation_timeout=config.get("TRANSFER_CONFIRMATION_TIMEOUT", 180),
            poll_interval=config.get("TRANSFER_POLL_INTERVAL", 5),
        )
    return SimulatedTransferGateway(network=config.get("STARKNET_NETWORK", "sepolia"))

# fundbridge/services/transfer_matcher.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from web3.exceptions import BadFunctionCallOutput, ContractLogicError, TransactionNotFound

from fundbridge.core.amounts import MAX_TOKEN_DECIMALS, AmountParseError, raw_from_human
from fundbridge.core.errors import RpcTimeout
from fundbridge.models.enums import Currency

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

# Verdict reasons. None of these are errors: callers poll on them.
RECEIPT_NOT_FOUND_YET = "RECEIPT_NOT_FOUND_YET"
RPC_TIMEOUT = "RPC_TIMEOUT"
TX_REVERTED = "TX_REVERTED"
DECIMALS_READ_FAILED = "DECIMALS_READ_FAILED"
INVALID_DECIMALS = "INVALID_DECIMALS"
AMOUNT_PARSE_FAILED = "AMOUNT_PARSE_FAILED"
TRANSFER_LOG_NOT_FOUND_OR_MISMATCH = "TRANSFER_LOG_NOT_FOUND_OR_MISMATCH"
TRANSFER_NOT_FOUND = "TRANSFER_NOT_FOUND"


@dataclass(frozen=True)
class MatchResult:
    ok: bool
    reason: Optional[str] = None
    decimals: Optional[int] = None
    raw_value: Optional[int] = None
    block_number: Optional[int] = None


@dataclass(frozen=True)
class TransferLog:
    token: str
    from_address: str
    to_address: str
    value: int


def _hex(v: Any) -> str:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    s = str(v)
    return s if s.startswith("0x") else "0x" + s


def _get(obj: Any, key: str) -> Any:
    # web3 AttributeDict and plain dicts both support item access
    return obj[key] if key in obj else None


def _topic_address(topic: Any) -> str:
    return "0x" + _hex(topic)[-40:].lower()


def decode_transfer_log(log: Any) -> Optional[TransferLog]:
    """Decode an ERC-20 Transfer log, or None when the log is something else."""
    topics = _get(log, "topics") or []
    if len(topics) < 3:
        return None
    if _hex(topics[0]).lower() != TRANSFER_TOPIC:
        return None

    data = _hex(_get(log, "data") or "0x")
    try:
        value = int(data, 16) if data not in ("0x", "") else 0
    except ValueError:
        return None

    return TransferLog(
        token=str(_get(log, "address") or "").lower(),
        from_address=_topic_address(topics[1]),
        to_address=_topic_address(topics[2]),
        value=value,
    )


def iter_transfers(receipt: Any, token_address: str) -> Iterable[TransferLog]:
    token = token_address.lower()
    for log in _get(receipt, "logs") or []:
        if str(_get(log, "address") or "").lower() != token:
            continue
        decoded = decode_transfer_log(log)
        if decoded is not None:
            yield decoded


def receipt_succeeded(receipt: Any) -> bool:
    status = _get(receipt, "status")
    return status is None or int(status) == 1


class TransferMatcher:
    """
    Matches a transaction hash against an expected ERC-20 Transfer.

    Deterministic given chain state: the same inputs re-derive the same
    verdict, so verification can be repeated freely. Configuration problems
    (unsupported chain, no RPC, no token address) raise; everything that
    means "not confirmed (yet)" comes back as MatchResult(ok=False).
    """

    def __init__(self, chain):
        self.chain = chain

    def _receipt(self, chain_id: int, tx_hash: str):
        try:
            # the transaction lookup surfaces unknown hashes before the receipt
            self.chain.get_transaction(chain_id, tx_hash)
            return self.chain.get_receipt(chain_id, tx_hash), None
        except TransactionNotFound:
            return None, RECEIPT_NOT_FOUND_YET
        except RpcTimeout:
            return None, RPC_TIMEOUT

    def verify(
        self,
        *,
        chain_id: int,
        currency: Union[Currency, str],
        tx_hash: str,
        expected_to: str,
        expected_amount: str,
        expected_from: Optional[str] = None,
    ) -> MatchResult:
        token = self.chain.resolve_token_address(chain_id, Currency(currency))

        receipt, reason = self._receipt(chain_id, tx_hash)
        if receipt is None:
            logger.info("[chain] %s tx=%s chain_id=%s", reason, tx_hash, chain_id)
            return MatchResult(ok=False, reason=reason)

        if not receipt_succeeded(receipt):
            return MatchResult(ok=False, reason=TX_REVERTED)

        try:
            decimals = self.chain.token_decimals(chain_id, token)
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            logger.warning("[chain] decimals read failed token=%s chain_id=%s: %s", token, chain_id, exc)
            return MatchResult(ok=False, reason=DECIMALS_READ_FAILED)
        except RpcTimeout:
            return MatchResult(ok=False, reason=RPC_TIMEOUT)

        if decimals < 0 or decimals > MAX_TOKEN_DECIMALS:
            return MatchResult(ok=False, reason=INVALID_DECIMALS)

        try:
            expected_raw = raw_from_human(expected_amount, decimals)
        except AmountParseError:
            return MatchResult(ok=False, reason=AMOUNT_PARSE_FAILED, decimals=decimals)

        want_to = expected_to.lower()
        want_from = expected_from.lower() if expected_from else None

        for t in iter_transfers(receipt, token):
            if t.to_address != want_to or t.value != expected_raw:
                continue
            if want_from and t.from_address != want_from:
                continue
            return MatchResult(
                ok=True,
                decimals=decimals,
                raw_value=t.value,
                block_number=_get(receipt, "blockNumber"),
            )

        return MatchResult(ok=False, reason=TRANSFER_LOG_NOT_FOUND_OR_MISMATCH, decimals=decimals)

    def find_inbound_transfer(
        self,
        *,
        chain_id: int,
        token_address: str,
        tx_hash: str,
        recipient: str,
    ) -> MatchResult:
        """
        Presence check used for bridge arrival: any Transfer of the token to
        `recipient` in the receipt. raw_value is the sum of such transfers.
        """
        receipt, reason = self._receipt(chain_id, tx_hash)
        if receipt is None:
            return MatchResult(ok=False, reason=reason)
        if not receipt_succeeded(receipt):
            return MatchResult(ok=False, reason=TX_REVERTED)

        want = recipient.lower()
        inbound = [t.value for t in iter_transfers(receipt, token_address) if t.to_address == want]
        if not inbound:
            return MatchResult(ok=False, reason=TRANSFER_NOT_FOUND)

        return MatchResult(
            ok=True,
            raw_value=sum(inbound),
            block_number=_get(receipt, "blockNumber"),
        )

"""Bridge execution state machine.

INITIALIZING -> VALIDATING -> DEPOSITING -> PROCESSING -> COMPLETED, with
FAILED reachable from every non-terminal state.

Step log per provider:
1. Validating bridge parameters
2. Provider deposit step (signer submits the origin-chain transfer)
3. Provider processing sub-steps (submit, relay/execute, publish intent)
4. Monitoring bridge completion

Deposits are never retried: a failed deposit needs a fresh quote and a fresh
execution.
"""

import logging
from datetime import timedelta
from typing import Optional

from wavebridge.bridges.base import BridgeProvider, BridgeQuote, ProcessResult, utcnow
from wavebridge.errors import (
    BridgeError,
    BridgeFailed,
    DepositFailed,
    ExecutionStepFailed,
    InvalidAmount,
    InvalidQuote,
    ProviderNotConfigured,
    QuoteExpired,
)
from wavebridge.execution.models import BridgeExecution, ExecutionContext, ExecutionStatus
from wavebridge.execution.monitor import StatusMonitor
from wavebridge.selector import ProviderSelector
from wavebridge.signing.base import DepositRequest
from wavebridge.tokens import parse_amount

logger = logging.getLogger(__name__)

VALIDATE_STEP = "Validating bridge parameters"
MONITOR_STEP = "Monitoring bridge completion"

# Step count used when the quote names a provider we cannot resolve
FALLBACK_TOTAL_STEPS = 3


class BridgeExecutor:
    """Drive one quote through deposit, processing and monitoring."""

    def __init__(self, selector: ProviderSelector, monitor: Optional[StatusMonitor] = None):
        self.selector = selector
        self.monitor = monitor or StatusMonitor()

    async def _notify(self, execution: BridgeExecution, context: ExecutionContext) -> None:
        """Send a snapshot to the progress listener."""
        if context.on_update:
            await context.on_update(execution.snapshot())

    def _resolve_provider(self, quote: BridgeQuote) -> Optional[BridgeProvider]:
        try:
            return self.selector.get(quote.provider)
        except (ProviderNotConfigured, ValueError):
            return None

    async def execute_bridge(self, quote: BridgeQuote, context: ExecutionContext) -> BridgeExecution:
        """Execute a confirmed quote.

        Failures never raise: the returned execution has status FAILED, the
        error message and the step log up to the failing step. Exceptions
        outside the BridgeError hierarchy are reported as ExecutionStepFailed.

        Args:
            quote: Quote the user confirmed
            context: Signer, addresses and optional progress callback

        Returns:
            BridgeExecution in a terminal state
        """
        provider = self._resolve_provider(quote)
        total_steps = provider.total_steps if provider else FALLBACK_TOTAL_STEPS
        execution = BridgeExecution(quote=quote, total_steps=total_steps)

        logger.info(f"Executing quote {quote.id} via {quote.provider.value} ({total_steps} steps)")
        await self._notify(execution, context)

        try:
            await self._validate(execution, quote, provider, context)
            await self._deposit(execution, quote, provider, context)
            result = await self._process(execution, quote, provider, context)
            await self._await_completion(execution, quote, provider, context, result)
        except BridgeError as e:
            self._fail(execution, quote, e)
        except Exception as e:
            logger.exception(f"Unexpected error executing quote {quote.id} at step {execution.current_step}")
            self._fail(
                execution,
                quote,
                ExecutionStepFailed(str(e) or e.__class__.__name__, cause=e.__class__.__name__),
            )

        logger.info(
            f"Execution {execution.id} for quote {quote.id} ended {execution.status.value} "
            f"at step {execution.current_step}/{execution.total_steps}"
        )
        await self._notify(execution, context)
        return execution

    def _fail(self, execution: BridgeExecution, quote: BridgeQuote, error: BridgeError) -> None:
        error.with_context(provider=quote.provider, quote_id=quote.id, step=execution.current_step)
        logger.error(*error.to_log_args(), extra=error.to_dict())
        execution.fail(error)

    async def _validate(
        self,
        execution: BridgeExecution,
        quote: BridgeQuote,
        provider: Optional[BridgeProvider],
        context: ExecutionContext,
    ) -> None:
        execution.transition(ExecutionStatus.VALIDATING)
        execution.advance(VALIDATE_STEP)
        await self._notify(execution, context)

        if quote.is_expired():
            raise QuoteExpired(f"Quote {quote.id} expired at {quote.expires_at.isoformat()}")
        if not quote.origin_token.address or not quote.destination_token.address:
            raise InvalidQuote("Quote has an empty token address")
        if provider is None:
            raise InvalidQuote(f"Quote names an unavailable provider: {quote.provider.value}")
        if not quote.deposit_address:
            raise InvalidQuote("Quote has no deposit address")
        if not quote.destination_address:
            raise InvalidQuote("Quote has no destination address")
        if context.recipient_address and quote.destination_address != context.recipient_address:
            raise InvalidQuote("Recipient address does not match the quote")
        if context.refund_address and quote.refund_address not in (None, context.refund_address):
            raise InvalidQuote("Refund address does not match the quote")
        if parse_amount(quote.from_amount) <= 0:
            raise InvalidAmount(f"Quote amount must be positive, got {quote.from_amount}")

    async def _deposit(
        self,
        execution: BridgeExecution,
        quote: BridgeQuote,
        provider: BridgeProvider,
        context: ExecutionContext,
    ) -> None:
        execution.transition(ExecutionStatus.DEPOSITING)
        execution.advance(provider.DEPOSIT_STEP)
        execution.estimated_completion = utcnow() + timedelta(
            seconds=quote.estimated_seconds or provider.ESTIMATED_SECONDS
        )
        await self._notify(execution, context)

        request = DepositRequest(
            chain=quote.deposit_chain,
            from_address=context.sender_address,
            to_address=quote.deposit_address,
            amount_units=int(quote.from_amount_units),
            token=quote.origin_token.address,
            memo=quote.deposit_memo,
        )
        try:
            deposit_ref = await context.signer.submit_deposit(request)
        except Exception as e:
            raise DepositFailed(str(e) or e.__class__.__name__, signer_error=e.__class__.__name__)

        if not deposit_ref:
            raise DepositFailed("Signer returned no transaction reference")

        execution.deposit_tx_ref = deposit_ref
        logger.info(f"Deposit for quote {quote.id} submitted: {deposit_ref}")

    async def _process(
        self,
        execution: BridgeExecution,
        quote: BridgeQuote,
        provider: BridgeProvider,
        context: ExecutionContext,
    ) -> ProcessResult:
        execution.transition(ExecutionStatus.PROCESSING)

        async def advance(description: str) -> None:
            execution.advance(description)
            await self._notify(execution, context)

        try:
            result = await provider.process(quote, execution.deposit_tx_ref, advance)
        except BridgeError:
            raise
        except Exception as e:
            raise ExecutionStepFailed(f"{provider.name} processing failed: {e}")

        execution.monitor_ref = result.monitor_ref
        if result.completion_ref:
            execution.completion_tx_ref = result.completion_ref
        return result

    async def _await_completion(
        self,
        execution: BridgeExecution,
        quote: BridgeQuote,
        provider: BridgeProvider,
        context: ExecutionContext,
        result: ProcessResult,
    ) -> None:
        execution.advance(MONITOR_STEP)
        await self._notify(execution, context)

        terminal = await self.monitor.monitor(result.monitor_ref, provider)
        if not terminal.succeeded:
            raise BridgeFailed(
                terminal.error or f"{provider.name} reported {terminal.raw_status}",
                raw_status=terminal.raw_status,
            )

        execution.complete(terminal.completion_ref)
        logger.info(f"Bridge for quote {quote.id} completed: {execution.completion_tx_ref}")

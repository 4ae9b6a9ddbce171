"""
Interceptor chains.

A client owns two chains: one over outgoing request configs, run in
reverse registration order, and one over responses, run in registration
order.
"""
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

from ..errors import CancellationError, ConfigurationError, InterceptorContractError
from ..types import FulfilledHandler, RejectedHandler, RunWhen

logger = logging.getLogger("fetch_client.interceptors")

# Errors that end a dispatch and are never offered to ``rejected`` handlers
TERMINAL_ERRORS = (CancellationError, ConfigurationError, InterceptorContractError)

Validator = Callable[[Any], Any]
Checkpoint = Callable[[], None]
Guard = Callable[[Awaitable[Any]], Awaitable[Any]]


@dataclass
class InterceptorOptions:
    """Per-entry interceptor options."""

    synchronous: bool = False
    """Handlers never return awaitables; enables the synchronous fast path."""

    run_when: Optional[RunWhen] = None
    """Predicate on the request config; the entry is skipped when it is false."""

    run_once: bool = False
    """Eject the entry after its first invocation."""


@dataclass
class InterceptorEntry:
    """A registered (fulfilled, rejected, options) triple."""

    id: int
    fulfilled: Optional[FulfilledHandler]
    rejected: Optional[RejectedHandler]
    options: InterceptorOptions
    disposed: bool = False


class InterceptorManager:
    """
    Ordered, mutable registry of interceptors for one value type.

    Example:
        chain = InterceptorManager(reverse=True)
        interceptor_id = chain.use(add_auth_header, synchronous=True)
        chain.eject(interceptor_id)
    """

    def __init__(self, reverse: bool = False, name: str = "interceptors") -> None:
        self._entries: Dict[int, InterceptorEntry] = {}
        self._next_id = 0
        self._reverse = reverse
        self._synchronous = True
        self.name = name

    @property
    def reverse(self) -> bool:
        return self._reverse

    @property
    def synchronous(self) -> bool:
        """True when every registered entry is marked synchronous."""
        return self._synchronous

    def use(
        self,
        on_fulfilled: Optional[FulfilledHandler] = None,
        on_rejected: Optional[RejectedHandler] = None,
        options: Optional[InterceptorOptions] = None,
        *,
        synchronous: Optional[bool] = None,
        run_when: Optional[RunWhen] = None,
        run_once: Optional[bool] = None,
    ) -> int:
        """
        Register an interceptor.

        Keyword options override the matching fields of ``options``.

        Returns:
            Id to pass to ``eject``. Ids are never reused within a chain.
        """
        base = options or InterceptorOptions()
        resolved = InterceptorOptions(
            synchronous=base.synchronous if synchronous is None else synchronous,
            run_when=base.run_when if run_when is None else run_when,
            run_once=base.run_once if run_once is None else run_once,
        )
        entry_id = self._next_id
        self._next_id += 1
        self._entries[entry_id] = InterceptorEntry(
            id=entry_id,
            fulfilled=on_fulfilled,
            rejected=on_rejected,
            options=resolved,
        )
        self._recompute_mode()
        logger.debug(f"{self.name}: registered interceptor {entry_id} (synchronous={resolved.synchronous})")
        return entry_id

    def eject(self, entry_id: int) -> bool:
        """Remove an interceptor. Returns False if the id is unknown."""
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            return False
        entry.disposed = True
        self._recompute_mode()
        return True

    def clear(self) -> None:
        """Remove every interceptor."""
        for entry in self._entries.values():
            entry.disposed = True
        self._entries.clear()
        self._recompute_mode()

    def __iter__(self) -> Iterator[InterceptorEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def _recompute_mode(self) -> None:
        self._synchronous = all(
            entry.options.synchronous for entry in self._entries.values()
        )

    def _snapshot(self) -> List[InterceptorEntry]:
        entries = list(self._entries.values())
        if self._reverse:
            entries.reverse()
        return entries

    def _should_run(self, entry: InterceptorEntry, context: Any) -> bool:
        if entry.disposed:
            return False
        run_when = entry.options.run_when
        return run_when is None or bool(run_when(context))

    def _consume(self, entry: InterceptorEntry) -> None:
        if entry.options.run_once:
            self.eject(entry.id)
            entry.disposed = True

    def run_sync(
        self,
        value: Any,
        *,
        validate: Optional[Validator] = None,
        checkpoint: Optional[Checkpoint] = None,
        until: Optional[Callable[[Any], bool]] = None,
        context: Any = None,
    ) -> Any:
        """
        Run the chain as a plain loop.

        Only valid while ``synchronous`` is true; a handler returning an
        awaitable raises InterceptorContractError. Errors a handler's
        paired ``rejected`` does not absorb propagate immediately.
        """
        current = value
        for entry in self._snapshot():
            if checkpoint is not None:
                checkpoint()
            if not self._should_run(entry, current if context is None else context):
                continue
            if entry.fulfilled is None:
                continue

            self._consume(entry)
            try:
                result = self._call_sync(entry, entry.fulfilled, current)
            except TERMINAL_ERRORS:
                raise
            except Exception as error:
                if entry.rejected is None:
                    raise
                result = self._call_sync(entry, entry.rejected, error)

            current = validate(result) if validate is not None else result
            if checkpoint is not None:
                checkpoint()
            if until is not None and until(current):
                break
        return current

    def _call_sync(self, entry: InterceptorEntry, handler: Callable[[Any], Any], arg: Any) -> Any:
        result = handler(arg)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise InterceptorContractError(
                f"{self.name}: interceptor {entry.id} is marked synchronous but returned an awaitable"
            )
        return result

    async def run(
        self,
        value: Any,
        *,
        error: Optional[BaseException] = None,
        carry_errors: bool = False,
        validate: Optional[Validator] = None,
        checkpoint: Optional[Checkpoint] = None,
        guard: Optional[Guard] = None,
        until: Optional[Callable[[Any], bool]] = None,
        context: Any = None,
    ) -> Any:
        """
        Run the chain, awaiting handler results.

        Args:
            value: Initial value (request config or response)
            error: Initial failure; offered to the first ``rejected`` handler
            carry_errors: Pass unhandled errors on to later entries'
                ``rejected`` handlers instead of raising immediately
            validate: Checks each handler result and returns the value to use
            checkpoint: Called before and after each handler
            guard: Wraps awaitable handler results (e.g. a cancel race)
            until: Stop early once it returns true for the current value
            context: Value given to ``run_when`` predicates; defaults to the
                current value

        Returns:
            The final value
        """
        current = value
        pending = error
        if pending is not None and not carry_errors:
            raise pending

        for entry in self._snapshot():
            if checkpoint is not None:
                checkpoint()
            if not self._should_run(entry, current if context is None else context):
                continue

            if pending is not None:
                if entry.rejected is None:
                    continue
                self._consume(entry)
                try:
                    result = await self._call(entry.rejected, pending, guard)
                except TERMINAL_ERRORS:
                    raise
                except Exception as next_error:
                    pending = next_error
                    continue
                pending = None
            else:
                if entry.fulfilled is None:
                    continue
                self._consume(entry)
                try:
                    result = await self._call(entry.fulfilled, current, guard)
                except TERMINAL_ERRORS:
                    raise
                except Exception as handler_error:
                    try:
                        if entry.rejected is None:
                            raise
                        result = await self._call(entry.rejected, handler_error, guard)
                    except TERMINAL_ERRORS:
                        raise
                    except Exception as unhandled:
                        if not carry_errors:
                            raise
                        pending = unhandled
                        continue

            current = validate(result) if validate is not None else result
            if checkpoint is not None:
                checkpoint()
            if until is not None and until(current):
                break

        if pending is not None:
            raise pending
        return current

    async def _call(
        self,
        handler: Callable[[Any], Any],
        arg: Any,
        guard: Optional[Guard],
    ) -> Any:
        result = handler(arg)
        if inspect.isawaitable(result):
            result = await (guard(result) if guard is not None else result)
        return result

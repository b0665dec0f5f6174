"""Request context classification.

Media URLs are only rewritten for visitor-facing renders. Admin screens,
APIs, background jobs and other automation must keep seeing origin URLs,
otherwise edits and exports would persist edge URLs.
"""

import enum
import logging
from typing import TYPE_CHECKING, Any, Callable, Protocol

from mediaedge.models.rewrite import ContextSignals

if TYPE_CHECKING:
    from starlette.requests import Request

    from mediaedge.config import Settings

logger = logging.getLogger("mediaedge.context")


class ContextVerdict(enum.Enum):
    UNKNOWN = "unknown"
    SAFE = "safe"
    UNSAFE = "unsafe"


class ContextOverrides(Protocol):
    """Host-supplied predicates that adjust the context decision."""

    def allow_rewrite_in_management_context(self) -> bool: ...

    def force_unsafe_context(self) -> bool: ...

    def force_frontend_subrequest(self) -> bool: ...

    def allow_authenticated_subrequest(self) -> bool: ...


class DefaultContextOverrides:
    """Overrides that never change the built-in decision."""

    def allow_rewrite_in_management_context(self) -> bool:
        return False

    def force_unsafe_context(self) -> bool:
        return False

    def force_frontend_subrequest(self) -> bool:
        return False

    def allow_authenticated_subrequest(self) -> bool:
        return False


def _ask(hook: Callable[[], Any], fail_closed: bool) -> bool:
    """Call an override hook, mapping errors and non-bool answers to fail_closed."""
    try:
        answer = hook()
    except Exception as e:
        logger.warning("Context override %s failed: %s", getattr(hook, "__name__", hook), e)
        return fail_closed

    if not isinstance(answer, bool):
        logger.warning(
            "Context override %s returned %s, expected bool",
            getattr(hook, "__name__", hook),
            type(answer).__name__,
        )
        return fail_closed
    return answer


class ContextGuard:
    """Classifies the current request as safe or unsafe for rewriting.

    The verdict is computed lazily on first use and kept for the rest of the
    request, since hosts only finish populating signals after routing.
    """

    def __init__(
        self,
        signals: ContextSignals | None,
        overrides: ContextOverrides | None = None,
    ) -> None:
        self.signals = signals
        self.overrides = overrides or DefaultContextOverrides()
        self.verdict = ContextVerdict.UNKNOWN

    def is_unsafe_context(self) -> bool:
        if self.verdict is ContextVerdict.UNKNOWN:
            unsafe = self._evaluate()
            self.verdict = ContextVerdict.UNSAFE if unsafe else ContextVerdict.SAFE
            logger.debug("Context verdict: %s", self.verdict.value)
        return self.verdict is ContextVerdict.UNSAFE

    def is_frontend_subrequest(self) -> bool:
        """
        Check if an async sub-request comes from a visitor rather than an operator.

        Login state is the differentiator: anonymous callers are visitors
        (infinite scroll, load more), authenticated callers are treated as
        operators unless the host opts in.
        """
        signals = self.signals
        if signals is None:
            return False

        if _ask(self.overrides.force_frontend_subrequest, fail_closed=False):
            return True

        if not signals.is_ajax:
            return False

        if signals.is_authenticated:
            return _ask(self.overrides.allow_authenticated_subrequest, fail_closed=False)

        return True

    def _evaluate(self) -> bool:
        signals = self.signals
        if signals is None:
            return True

        if signals.is_admin and not _ask(
            self.overrides.allow_rewrite_in_management_context, fail_closed=False
        ):
            if not (signals.is_ajax and self.is_frontend_subrequest()):
                return True

        if (
            signals.is_rest
            or signals.is_cron
            or signals.is_cli
            or signals.is_xmlrpc
            or signals.is_autosave
            or signals.is_installing
        ):
            return True

        return _ask(self.overrides.force_unsafe_context, fail_closed=True)


def signals_from_request(request: "Request", settings: "Settings") -> ContextSignals:
    """Derive context signals from an incoming HTTP request.

    Hosts can flag requests the path alone can't reveal (scheduled jobs
    triggered over HTTP, editor autosaves, CLI bridges) by setting
    ``request.state.doing_cron``, ``request.state.doing_autosave`` or
    ``request.state.is_cli``.
    """
    path = request.url.path
    state = request.state

    user = request.session.get("user") if "session" in request.scope else None

    return ContextSignals(
        is_admin=_under_prefix(path, settings.admin_path_prefix),
        is_ajax=request.headers.get("x-requested-with", "").lower() == "xmlhttprequest",
        is_rest=_under_prefix(path, settings.api_path_prefix),
        is_cron=bool(getattr(state, "doing_cron", False)),
        is_cli=bool(getattr(state, "is_cli", False)),
        is_xmlrpc=_under_prefix(path, settings.xmlrpc_path),
        is_autosave=bool(getattr(state, "doing_autosave", False)),
        is_installing=settings.maintenance_mode,
        is_authenticated=bool(user),
    )


def _under_prefix(path: str, prefix: str) -> bool:
    if not prefix:
        return False
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")

# projections/write_barrier.py
"""
Thread-local write contexts.

Read models are owned by projections and the sequence/counter tables by
commands. Code that legitimately writes them wraps the write in one of the
context managers below; model save()/delete() guards check the innermost
context with assert_write_allowed().

    with projection_writes_allowed():
        Invoice.objects.projection().update_or_create(...)

    with command_writes_allowed():
        seq.save()

Contexts nest; the innermost one wins. admin_emergency additionally needs
settings.ALLOW_ADMIN_EMERGENCY_WRITES. Under TESTING the guards are open so
fixtures can build rows directly.
"""

from contextlib import contextmanager
import threading

from django.conf import settings


COMMAND = "command"
PROJECTION = "projection"
BOOTSTRAP = "bootstrap"
MIGRATION = "migration"
ADMIN_EMERGENCY = "admin_emergency"

WRITE_CONTEXTS = frozenset({COMMAND, PROJECTION, BOOTSTRAP, MIGRATION, ADMIN_EMERGENCY})

# Who may write what.
PROJECTION_OWNED = frozenset({PROJECTION})
COMMAND_OWNED = frozenset({COMMAND, BOOTSTRAP, MIGRATION, ADMIN_EMERGENCY})


class WriteBarrierViolation(RuntimeError):
    """A guarded table was written outside its allowed contexts."""


_state = threading.local()


def _context_stack() -> list[str]:
    stack = getattr(_state, "write_context_stack", None)
    if stack is None:
        stack = []
        _state.write_context_stack = stack
    return stack


def current_write_context() -> str | None:
    stack = _context_stack()
    return stack[-1] if stack else None


def write_context_allowed(allowed_contexts) -> bool:
    ctx = current_write_context()
    if ctx is None:
        return False
    if ctx == ADMIN_EMERGENCY:
        return ctx in allowed_contexts and getattr(settings, "ALLOW_ADMIN_EMERGENCY_WRITES", False)
    return ctx in allowed_contexts


def assert_write_allowed(label: str, allowed_contexts, action: str = "write") -> None:
    """
    Raise WriteBarrierViolation unless the current context may write.

    Args:
        label: Model name used in the error message
        allowed_contexts: Contexts that may write (PROJECTION_OWNED, COMMAND_OWNED)
        action: Verb for the error message (save, delete, bulk_create, ...)
    """
    if getattr(settings, "TESTING", False):
        return
    if write_context_allowed(allowed_contexts):
        return
    raise WriteBarrierViolation(
        f"{label} {action} refused in write context {current_write_context()!r}; "
        f"allowed: {', '.join(sorted(allowed_contexts))}."
    )


@contextmanager
def writes_allowed(name: str):
    if name not in WRITE_CONTEXTS:
        raise ValueError(f"Unknown write context: {name}")
    if name == ADMIN_EMERGENCY and not getattr(settings, "ALLOW_ADMIN_EMERGENCY_WRITES", False):
        raise WriteBarrierViolation("admin_emergency writes are disabled.")
    stack = _context_stack()
    stack.append(name)
    try:
        yield
    finally:
        stack.pop()


def command_writes_allowed():
    return writes_allowed(COMMAND)


def projection_writes_allowed():
    return writes_allowed(PROJECTION)


def bootstrap_writes_allowed():
    return writes_allowed(BOOTSTRAP)


def migration_writes_allowed():
    return writes_allowed(MIGRATION)


def admin_emergency_writes_allowed():
    return writes_allowed(ADMIN_EMERGENCY)

"""Tiny terminal UI helpers (prompt_toolkit-based).

Two prompts back the import flow: a yes/no confirmation used for the backup
check and for each suspected duplicate, and a multi-line input used to paste
the bank's JSON payload. Both accept an optional ``session`` so tests can
drive them with pipe input.
"""

from __future__ import annotations

from prompt_toolkit import PromptSession
from prompt_toolkit.validation import ValidationError, Validator

_YES = frozenset({"y", "yes"})
_NO = frozenset({"n", "no"})


class _YesNoValidator(Validator):
    def validate(self, document) -> None:
        text = document.text.strip().lower()
        # Empty input is allowed and means "use the default".
        if text and text not in _YES | _NO:
            raise ValidationError(message="Please answer y(es) or n(o).")


def confirm(
    message: str,
    *,
    default: bool = False,
    session: PromptSession | None = None,
) -> bool:
    """Ask a yes/no question; Enter on an empty line returns ``default``."""

    sess: PromptSession = session if session is not None else PromptSession()
    hint = " (Y/n) " if default else " (y/N) "
    answer = sess.prompt(
        message.rstrip() + hint,
        validator=_YesNoValidator(),
        validate_while_typing=False,
    )
    text = answer.strip().lower()
    if not text:
        return default
    return text in _YES


def editor_input(
    message: str,
    *,
    session: PromptSession | None = None,
) -> str:
    """Collect multi-line text (e.g., a pasted JSON document).

    Esc then Enter (or Meta+Enter) submits; Ctrl-X Ctrl-E opens ``$EDITOR``
    on the current buffer.
    """

    sess: PromptSession = session if session is not None else PromptSession()
    return sess.prompt(
        message.rstrip() + "\n",
        multiline=True,
        enable_open_in_editor=True,
    )


__all__ = ["confirm", "editor_input"]

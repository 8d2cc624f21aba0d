"""Row transformation and export eligibility engine.

Everything in this package is a pure function of its inputs: no I/O, no
logging side effects on data, no mutation of the session state.
"""

from .conflicts import apply_alternate_suggestions, email_conflicts, set_override
from .eligibility import eligible_rows, existing_dni_matches, validate_rows
from .evaluation import evaluate
from .projector import project

__all__ = [
    "apply_alternate_suggestions",
    "eligible_rows",
    "email_conflicts",
    "evaluate",
    "existing_dni_matches",
    "project",
    "set_override",
    "validate_rows",
]

from __future__ import annotations


class CharsheetError(Exception):
    """Base class for host-level failures (bad input files, unknown sheets...)."""


class SheetFormatError(CharsheetError):
    pass


class UnknownSheetError(CharsheetError):
    pass


class UnknownFeatureSetError(CharsheetError):
    pass


class ScriptEvaluationError(CharsheetError):
    """Raised by a script evaluator; the resolver stores it as a ScriptError result."""


class DiceNotationError(CharsheetError, ValueError):
    pass

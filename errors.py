import logging
from typing import List, Optional


class ReportError(Exception):
    """Base class for failures that abort a report export."""
    pass


class TemplateLoadError(ReportError):
    """A template resource could not be fetched or parsed. Fatal for the export."""

    def __init__(self, template_id: str, message: str):
        self.template_id = template_id
        super().__init__(f"Template '{template_id}': {message}")


class InputValidationError(ReportError):
    """Caller supplied input that cannot be composed (missing subject, no records, ...)."""
    pass


class CellWriteWarning(UserWarning):
    """A single cell, style or merge operation failed and was skipped."""
    pass


def record_cell_warning(message: str, sink: Optional[List[CellWriteWarning]] = None) -> CellWriteWarning:
    """Logs a recovered cell-level failure and appends it to sink when one is given."""
    warning = CellWriteWarning(message)
    logging.warning(message)
    if sink is not None:
        sink.append(warning)
    return warning

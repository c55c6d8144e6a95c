"""CSV report writing."""

import logging
import os
from typing import List, Optional, Sequence

import pandas as pd

from audit_errors import ExportError, NoDataError
from config import OUTPUT_DIR

logger = logging.getLogger(__name__)


def get_destination_path(file_name: str, project_id: Optional[str] = None, output_dir: str = OUTPUT_DIR) -> str:
    """output/<file_name>, or output/<project_id>/<file_name> when reports are split per project."""
    if project_id:
        return os.path.join(output_dir, project_id, file_name)
    return os.path.join(output_dir, file_name)


def has_content(path: str) -> bool:
    return os.path.isfile(path) and os.path.getsize(path) > 0


def export_to_csv(header: Sequence[str], rows: List[Sequence[str]], destination_path: str) -> int:
    """
    Write rows to a CSV report and return the number of rows written.

    A new file gets the header first. If the destination already has content
    the rows are appended and the header is not repeated.

    Raises:
        NoDataError: If there are no rows. The destination is left untouched.
        ExportError: If the directory or the file cannot be written.
    """
    if not rows:
        raise NoDataError(f"No records to export to {destination_path}")

    df = pd.DataFrame([list(row) for row in rows], columns=list(header), dtype=str)
    append = has_content(destination_path)

    try:
        if append:
            logger.debug(f"Appending {len(df)} rows to {destination_path}")
        else:
            directory = os.path.dirname(destination_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            logger.debug(f"Creating {destination_path} with {len(df)} rows")

        df.to_csv(destination_path, mode='a' if append else 'w', header=not append, index=False)
    except PermissionError as e:
        raise ExportError(f"Permission error saving CSV {destination_path}: {str(e)}") from e
    except OSError as e:
        raise ExportError(f"OS error saving CSV {destination_path}: {str(e)}") from e

    return len(df)

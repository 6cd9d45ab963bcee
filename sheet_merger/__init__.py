import logging

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from sheet_merger.pipeline import combine_merged_files, merge, run_merge  # noqa: E402

__all__ = ["__version__", "combine_merged_files", "merge", "run_merge"]

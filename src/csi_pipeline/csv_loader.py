"""CSV feedback loading."""
from pathlib import Path

import pandas as pd

OPTIONAL_COLUMNS = ("id", "customer_id", "source")


def load_feedback(csv_path: Path) -> list[dict]:
    """Load feedback payloads from CSV.

    Requires a `text` column; `id`, `customer_id` and `source` are optional.
    Rows with empty text are skipped. Returns raw payload dicts for the
    collector.
    """
    df = pd.read_csv(csv_path, dtype=str)
    if "text" not in df.columns:
        raise ValueError(f"{csv_path} has no 'text' column")

    payloads = []
    for row in df.itertuples(index=False):
        text = getattr(row, "text")
        if pd.isna(text) or not str(text).strip():
            continue

        payload = {"text": str(text)}
        for column in OPTIONAL_COLUMNS:
            value = getattr(row, column, None)
            if value is not None and pd.notna(value):
                payload[column] = str(value)
        payloads.append(payload)

    return payloads

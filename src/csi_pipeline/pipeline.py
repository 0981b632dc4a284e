"""Batch run: push a CSV of feedback through the service and write a report."""
import argparse
import asyncio
from collections import Counter
from datetime import datetime
from pathlib import Path

from .config import Settings, load_settings
from .csv_loader import load_feedback
from .service import FeedbackService


def _report_to_markdown(responses: list[tuple[int, dict]], metrics: dict[str, int]) -> str:
    """Convert batch responses to markdown."""
    successes = [body for status, body in responses if status == 200]
    failures = [body for status, body in responses if status != 200]
    labels = Counter(body["result"]["sentiment"]["label"] for body in successes)
    causes = Counter(body["result"]["rootCause"]["cause"] for body in successes)

    lines = [
        "# Customer Feedback Report",
        f"**Generated:** {datetime.now().isoformat(timespec='seconds')}\n",
        "## Summary",
        f"- **Processed:** {metrics.get('processed', 0)}",
        f"- **Escalations:** {metrics.get('escalations', 0)}",
        f"- **Failures:** {len(failures)}",
        "",
        "## Sentiment",
        *[f"- {label}: {count}" for label, count in labels.most_common()],
        "",
        "## Root Causes",
        *[f"- {cause}: {count}" for cause, count in causes.most_common()],
        "",
    ]

    escalated = [body for body in successes if body["result"]["escalate"]["escalate"]]
    if escalated:
        lines.append("## Escalated Items")
        for body in escalated:
            result = body["result"]
            lines.extend([
                f"### {body['id']}",
                f"- **Reason:** {result['escalate']['reason']}",
                f"- **Cause:** {result['rootCause']['cause']}",
                f"- **Actions:** {', '.join(result['actionPlan']['actions']) or 'N/A'}",
                ""
            ])

    if failures:
        lines.append("## Failures")
        lines.extend([f"- {body['error']}" for body in failures])
        lines.append("")

    return "\n".join(lines)


async def run_pipeline(csv_path: Path, settings: Settings | None = None) -> Path | None:
    """Process every row of the CSV; returns the markdown report path."""
    print("=== Customer Sentiment Investigator ===\n")
    settings = settings or load_settings()

    if not csv_path.exists():
        print(f"Error: {csv_path} not found")
        return None

    print(f"Loading feedback from {csv_path}...")
    payloads = load_feedback(csv_path)
    print(f"Loaded {len(payloads)} feedback items\n")

    service = FeedbackService.from_settings(settings)
    semaphore = asyncio.Semaphore(settings.max_concurrent)
    total = len(payloads)
    completed = 0

    async def ingest_with_progress(payload: dict) -> tuple[int, dict]:
        nonlocal completed
        async with semaphore:
            response = await service.ingest(payload)
        completed += 1
        print(f"  Progress: {completed}/{total} items", end="\r")
        return response

    try:
        responses = await asyncio.gather(*[ingest_with_progress(p) for p in payloads])
    finally:
        await service.close()
    print(f"  Progress: {completed}/{total} items")

    metrics = service.metrics.snapshot()
    print(f"✓ Processed {metrics.get('processed', 0)}, escalated {metrics.get('escalations', 0)}\n")

    settings.reports_dir.mkdir(parents=True, exist_ok=True)
    md_file = settings.reports_dir / f"report_{datetime.now():%Y%m%d_%H%M%S}.md"
    md_file.write_text(_report_to_markdown(responses, metrics), encoding="utf-8")
    print(f"✓ Saved to {md_file}")
    return md_file


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a CSV of feedback through the pipeline")
    parser.add_argument("csv_path", type=Path, help="CSV with a 'text' column")
    args = parser.parse_args()
    asyncio.run(run_pipeline(args.csv_path))


if __name__ == "__main__":
    main()

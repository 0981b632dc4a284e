"""Accuracy check of a sentiment analyzer against labeled examples."""
import asyncio

from .stages import KeywordSentimentAnalyzer, SentimentAnalyzer

EXAMPLES = [
    {"text": "I love this product, it works great", "label": "positive"},
    {"text": "Package was late and damaged", "label": "negative"},
    {"text": "okay, nothing special", "label": "neutral"},
]


async def evaluate(
    analyzer: SentimentAnalyzer, examples: list[dict] = EXAMPLES, verbose: bool = True
) -> float:
    """Return the fraction of examples whose predicted label matches."""
    correct = 0
    for example in examples:
        result = await analyzer.analyze(example["text"])
        if result.label == example["label"]:
            correct += 1
        if verbose:
            print(f"{example['text']} => {result.label} (score={result.score})")

    if verbose:
        print(f"Accuracy: {correct}/{len(examples)}")
    return correct / len(examples) if examples else 0.0


def main() -> None:
    asyncio.run(evaluate(KeywordSentimentAnalyzer()))


if __name__ == "__main__":
    main()

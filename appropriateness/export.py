"""Export evaluation results to Markdown and JSON."""

from appropriateness.models import EvaluationResult


def _signed(value: float) -> str:
    return f"{value:+.1f}" if value else "0.0"


def export_markdown(result: EvaluationResult) -> str:
    """Export an evaluation as a Markdown report."""
    score = "Insufficient data" if result.is_insufficient_data else f"{result.score}/9"
    md = [
        "# Imaging Appropriateness Report\n",
        f"**Score:** {score} ({result.category.value})\n",
        f"**Status:** {result.status_color.value}\n",
        f"**Coverage:** {result.coverage_status.value} (confidence: {result.confidence.value})\n",
        f"\n{result.description}\n",
    ]

    reference = result.match_result.reference_fact
    if reference is not None:
        md.append("\n## Reference Criteria\n")
        md.append(f"- **Topic:** {reference.topic}\n")
        md.append(f"- **Variant:** {reference.variant}\n")
        md.append(f"- **Procedure:** {reference.procedure} (ACR rating {reference.rating}/9)\n")
        md.append(f"- **Source:** {reference.source}\n")

    if result.factors:
        md.append("\n## Factors\n\n")
        md.append(f"Baseline {result.baseline_score:.1f}, raw score {result.raw_score:.1f}\n\n")
        md.append("| Factor | Observed | Contribution | Citation |\n")
        md.append("|---|---|---|---|\n")
        for f in result.factors:
            md.append(f"| {f.name} | {f.observed_value} | {_signed(f.contribution)} | {f.citation} |\n")

    if result.alternatives:
        md.append("\n## Alternatives\n")
        for a in result.alternatives:
            md.append(
                f"- **{a.procedure}** ({a.rating}/9): {a.rationale}; "
                f"cost {a.cost_comparison.value}, radiation {a.radiation_comparison.value}\n"
            )

    if result.warnings:
        md.append("\n## Safety Warnings\n")
        for w in result.warnings:
            md.append(f"- [{w.severity.value.upper()}] {w.message}\n")

    if result.reasoning:
        md.append("\n## Reasoning\n")
        for line in result.reasoning:
            md.append(f"- {line}\n")

    if result.evidence_links:
        md.append("\n## Evidence\n")
        for link in result.evidence_links:
            md.append(f"- [{link.title}]({link.url}) ({link.type.value})\n")

    md.append("\n---\n*Clinical decision support only. Final ordering decisions rest with the clinician.*\n")
    return "".join(md)


def export_json(result: EvaluationResult) -> str:
    """Export an evaluation as a JSON string."""
    return result.model_dump_json(indent=2)

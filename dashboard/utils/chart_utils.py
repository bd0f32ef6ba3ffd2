import json

FALLBACK_NOTICE = "Live appointment data is unavailable right now."

BAR_COLOR = "rgba(54, 162, 235, 0.6)"
BAR_BORDER = "rgba(54, 162, 235, 1)"
FALLBACK_COLOR = "rgba(201, 203, 207, 0.6)"


class ChartFormatError(ValueError):
    """Labels and counts handed to the formatter are not the same length."""


def format_data_for_chart(labels, counts):
    """
    Package labels/counts for a chart: the raw lists plus their JSON text.
    Values pass through untouched (no rounding, reordering or de-duplication).
    """
    labels = list(labels)
    counts = list(counts)
    if len(labels) != len(counts):
        raise ChartFormatError(
            f"labels and counts must have equal length (got {len(labels)} and {len(counts)})"
        )

    return {
        "labels": labels,
        "counts": counts,
        "serialized_labels": json.dumps(labels),
        "serialized_counts": json.dumps(counts),
    }


def build_chart_config(result):
    """
    Chart.js bar chart configuration for an AnalyticsResult.
    Fallback results are drawn grey with a notice in the title.
    """
    dataset = format_data_for_chart(result.labels, result.counts)
    color = FALLBACK_COLOR if result.is_fallback else BAR_COLOR

    title = "Appointments, next %d days" % len(dataset["labels"])
    if result.is_fallback:
        title = f"{title} ({FALLBACK_NOTICE})"

    return {
        "type": "bar",
        "data": {
            "labels": dataset["labels"],
            "datasets": [{
                "label": "Appointments",
                "data": dataset["counts"],
                "backgroundColor": color,
                "borderColor": BAR_BORDER,
                "borderWidth": 1,
            }],
        },
        "options": {
            "responsive": True,
            "plugins": {
                "legend": {"display": False},
                "title": {"display": True, "text": title},
            },
            "scales": {
                "y": {"beginAtZero": True, "ticks": {"precision": 0}},
            },
        },
        "is_fallback": result.is_fallback,
    }

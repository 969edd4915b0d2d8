import plotly.express as px
import pandas as pd


def export_histogram(trials, path: str, field: str = "probes"):
    if not trials:
        with open(path, "w") as f:
            f.write("<h1>Attack Trials</h1><p>No data to display.</p>")
        return

    df = pd.DataFrame(trials)
    df[field] = pd.to_numeric(df[field], errors='coerce')
    df = df.dropna(subset=[field])
    df['outcome'] = df['success'].map({True: "recovered", False: "failed"})
    if 'guesses_used' in df.columns:
        df['guesses_used'] = df['guesses_used'].astype(str)

    fig = px.histogram(
        df,
        x=field,
        color="guesses_used" if 'guesses_used' in df.columns else "outcome",
        hover_data=[c for c in ('outcome', 'secret') if c in df.columns],
        title=f"Attack Trials ({len(df)}) by {field}",
        labels={field: field.replace('_', ' ').title(), "guesses_used": "Guesses"}
    )
    fig.update_layout(
        bargap=0.05,
        font=dict(family="Courier New, monospace", size=12),
    )

    fig.write_html(path, include_plotlyjs="cdn", full_html=True)


def export_histogram_ascii(trials, field: str = "probes", bins: int = 10, width: int = 50):
    if not trials:
        return "No trials to display."

    values = [item[field] for item in trials]
    low, high = min(values), max(values)
    if low == high:
        return f"{field}: all {len(values)} trials at {low}"

    bin_width = (high - low) / bins
    counts = [0] * bins
    for value in values:
        counts[min(int((value - low) / bin_width), bins - 1)] += 1

    peak = max(counts)
    output = [f"{field} ({len(values)} trials)"]
    for i, count in enumerate(counts):
        start = low + i * bin_width
        bar = '#' * max(1 if count else 0, round(count / peak * width))
        output.append(f"{start:>10.1f} | {bar} {count}")
    return "\n".join(output)

from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>squiggleanchor region report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>Region {{ summary.region }}</h1>
<p class="small">Generated: {{ generated_at }}</p>

<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>BAM</th><td><code>{{ inputs.bam }}</code></td></tr>
      <tr><th>Reference</th><td><code>{{ inputs.ref }}</code></td></tr>
      <tr><th>Read map</th><td><code>{{ inputs.read_map }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Parameters</h3>
    <table>
      <tr><th>Stride</th><td>{{ summary.stride }}</td></tr>
      <tr><th>k</th><td>{{ summary.k }}</td></tr>
      <tr><th>Columns</th><td>{{ summary.num_columns }}</td></tr>
      <tr><th>Reads</th><td>{{ summary.num_reads }}</td></tr>
    </table>
  </div>
</div>

<h2>Alignment records</h2>
<table>
  {% for key, value in summary.record_stats | dictsort %}
  <tr><th>{{ key }}</th><td>{{ value }}</td></tr>
  {% endfor %}
</table>

{% if plots %}
<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Anchor coverage</h3>
    <img src="{{ plots.column_coverage }}" alt="column coverage">
  </div>
  <div class="card">
    <h3>Candidate sequences</h3>
    <img src="{{ plots.alt_counts }}" alt="alternative sequence counts">
  </div>
</div>
{% endif %}

<h2>Columns</h2>
<table>
  <tr><th>Position</th><th>Template anchored</th><th>Complement anchored</th><th>Alternatives</th></tr>
  {% for pos in summary.positions %}
  <tr>
    <td>{{ pos }}</td>
    <td>{{ summary.template_anchored[loop.index0] }}</td>
    <td>{{ summary.complement_anchored[loop.index0] }}</td>
    <td>{{ summary.alt_counts[loop.index0] }}</td>
  </tr>
  {% endfor %}
</table>

<hr>
<p class="small">squiggleanchor {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    summary: Dict[str, Any],
    inputs: Dict[str, str],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        summary=summary,
        inputs=inputs,
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    return out_path

"""Report narrative synthesis and PDF rendering.

Use explicit imports:
    from worker.reports.synthesizer import ReportSynthesizer
    from worker.reports.renderer import DocumentRenderer, render_report_html
    from worker.reports.templating import render_template
"""

__all__ = [
    "ReportSynthesizer",
    "DocumentRenderer",
    "render_report_html",
    "render_template",
]

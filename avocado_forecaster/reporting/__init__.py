"""
avocado_forecaster.reporting — Figures, Markdown report, output reading and export.

Everything here works from frames already in memory or from files the
comparison stage wrote to data/outputs/; nothing here fits a model.

Modules:
  plots      — matplotlib (Agg) PNG figures.
  report     — report tables (DataFrames) and Markdown report assembly.
  pdf        — the same report laid out as a PDF (reportlab).
  reader     — Parquet/JSON/CSV loading helpers for comparison outputs.
  formatters — ASCII terminal table formatters for Typer CLI commands.
  export     — CSV/JSON flat-file export helpers.
"""

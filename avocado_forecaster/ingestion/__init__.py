"""
Ingestion layer — reading the weekly avocado sales spreadsheet.

Submodules:
  loader  — CSV / Excel reader, header normalisation, row validation
"""

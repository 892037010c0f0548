"""Command line interface (`python -m sheetmerge.cli`)."""

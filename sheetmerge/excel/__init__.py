"""Grid adapter: workbook reading (openpyxl) and export writing (pandas)."""

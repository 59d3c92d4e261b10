import re


def safe_filename(name: str) -> str:
    """Sanitize a string to be safe for use as a filename."""
    name = str(name)
    name = re.sub(r'[\\/:*?"<>|]', '_', name)
    name = re.sub(r'\s+', '_', name)
    name = re.sub(r'_+', '_', name)
    return name.strip('_')


def safe_sheet_name(name: str) -> str:
    """Excel sheet names are <= 31 chars and may not contain []:*?/\\."""
    return re.sub(r'[\[\]:*?/\\]', '_', str(name))[:31]


def write_sheet_with_thousands(writer, df, sheet_name, thousand_cols=None, index=False):
    """Write ``df`` to an open xlsxwriter ExcelWriter, formatting count columns as #,##0."""
    thousand_cols = thousand_cols or []
    df.to_excel(writer, sheet_name=sheet_name, index=index)
    workbook = writer.book
    worksheet = writer.sheets[sheet_name]
    thousand_format = workbook.add_format({"num_format": "#,##0"})
    offset = 1 if index else 0
    for col_name in thousand_cols:
        if col_name in df.columns:
            col_idx = df.columns.get_loc(col_name) + offset
            worksheet.set_column(col_idx, col_idx, None, thousand_format)

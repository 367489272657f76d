"""Errors raised by the denial-map pipeline."""


class SchemaError(KeyError):
    """A configured column is missing from an input table."""

    def __init__(self, table: str, missing: list[str]):
        self.table = table
        self.missing = list(missing)
        super().__init__(f"Table '{table}' is missing columns: {self.missing}")

    def __str__(self) -> str:
        return self.args[0]


class UnrecognizedCategory(ValueError):
    """A categorical value falls outside its closed set of labels."""

    def __init__(self, column: str, values):
        self.column = column
        self.values = sorted(str(v) for v in values)
        super().__init__(f"Unrecognized {column} values: {self.values}")

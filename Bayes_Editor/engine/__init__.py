"""Communication with the external reasoning engine."""

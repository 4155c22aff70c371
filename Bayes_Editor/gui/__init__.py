"""Qt adapters for the editor core. Importing requires PySide6."""

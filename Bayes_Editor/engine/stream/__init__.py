"""Wire format helpers: command codec and incremental parser."""

from .writer import ResultWriter, format_solvedtm

__all__ = ["ResultWriter", "format_solvedtm"]

from iteration_tests.reporting.tsv import build_table, generate_tsv, load_report, write_tsv

__all__ = ["build_table", "generate_tsv", "load_report", "write_tsv"]

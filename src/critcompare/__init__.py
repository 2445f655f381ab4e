"""critcompare: compare Criterion benchmarks between two git branches."""

__version__ = "0.3.0"

"""Session synchronization and question-numbering engine for mock exams."""

__version__ = "0.1.0"

"""Parse git diffs into changed code elements, snippets and summaries."""

__version__ = "0.1.0"
"""Diff parsing, language classification, element detection and snippet capture."""
"""Scan orchestration: documents, per-document context and the runner."""

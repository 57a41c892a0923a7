# src/batch/__init__.py — v1

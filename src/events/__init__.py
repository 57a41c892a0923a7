# src/events/__init__.py — v1

# src/longevity/__init__.py — v1

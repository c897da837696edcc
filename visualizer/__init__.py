"""
Map View Visualizer backend.

Run with ``python -m visualizer.main`` or
``uvicorn visualizer.main:create_app --factory``.
"""

__version__ = "1.0.0"

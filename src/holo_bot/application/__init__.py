"""
Application Layer

Contains the per-guild music queue and the ports it drives.

Structure:
- services/: Buffered queue event loop, queue registry and their building blocks
- interfaces/: Port interfaces for infrastructure adapters
"""

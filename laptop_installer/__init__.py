"""Arch Linux laptop installer (Python-first, stage-driven).

Core design goals:
- Ordered stages, fail-fast on the first error
- Resumable via a persisted state file (secrets are never persisted)
- Optional LUKS2 encryption for root and swap
- btrfs subvolume layout that keeps root snapshots small
- Centralized logging
"""

__all__ = []

"""
Daybreak - Narrative State Engine

A deterministic, rules-driven core for a day-structured visual-novel/RPG hybrid.
The engine owns the run state and provides:
- Clamped status resources and relationship tracks
- A day/phase clock with a per-phase time budget
- A synchronous event bus wiring cross-system reaction rules
- A dialogue effect mini-language with gated choices
- A memory ledger with unlock offers
- Ending evaluation over the accumulated state

Rendering, assets and input belong to an external renderer that reads
state through queries and issues commands.
"""

__version__ = "0.1.0"

"""
Kabu - Data-driven rules interpreter for turn-based card games.

Game logic lives entirely in a declarative rule document (actions,
abilities, metadata). The interpreter provides:
- A mutable game state model
- Sandboxed condition evaluation
- A fixed vocabulary of effect operations
- Turn and phase bookkeeping
"""

__version__ = "0.1.0"

"""
Rosette - Royal Game of Ur engine and multiplayer server.

A ruleset-driven race-and-capture board game that can be played locally or
by two networked participants. Provides:
- Configurable rulesets (Finkel, Simple, Masters, Blitz, Tournament, custom)
- A strict roll/move/forfeit turn engine
- Automated and network-backed participants
- Rooms with reconnection grace periods, served over WebSockets
"""

__version__ = "0.1.0"

"""Core mathematics and configuration for the EV finder engine.

This package contains pure, bookmaker-agnostic building blocks:

- ``odds_math``     — odds conversion, implied probability, EV and edge
- ``devig``         — selectable vig-removal methods (dispatch table)
- ``kelly``         — fractional Kelly sizing for surfaced opportunities
- ``markets``       — immutable market definitions and the default registry
- ``engine_config`` — the frozen configuration bundle passed to every run
- ``models``        — Quote / MarketCluster / FairValue / EVOpportunity

Nothing in this package imports from ``evfinder.services``.
All modules are side-effect-free and unit-testable in isolation.
"""

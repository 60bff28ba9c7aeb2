"""
Rallypoint — Engagement Backend for a Gaming Community
=======================================================
Build sharing with up/down voting, looking-for-group postings, forums,
clans and chat.  Every user action is a single transaction that writes the
fact row and moves the denormalized counters with relative SQL updates, so
concurrent actions never lose an increment.

Package layout::

    rallypoint/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # VIP tiers, clan capacity, field limits
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default forum categories
    ├── services/
    │   ├── counters.py            # Relative / floor-clamped counter updates
    │   ├── errors.py              # NotFound / Conflict / Validation / Forbidden
    │   ├── build_service.py       # Builds + CastVote
    │   ├── lfg_service.py         # LFG posts + JoinGroup / LeaveGroup
    │   ├── forum_service.py       # Threads + CreateThread / CreateReply
    │   ├── clan_service.py        # Clans + membership counts
    │   ├── user_service.py        # Profiles + VIP tier
    │   ├── chat_service.py        # Direct and clan messages
    │   ├── stats_service.py       # Community totals
    │   └── reconciliation_service.py  # Counter drift repair
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config and JWT dependencies
        └── routes/        # builds, lfg, forums, community, admin
"""

__version__ = "0.1.0"

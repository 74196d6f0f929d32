"""
Nsasa — Departmental Membership & Engagement Portal
=====================================================
Admits members through an approval workflow, moderates the content they
author, runs one-vote-per-member polls, and ranks approved students on an
engagement leaderboard.

Package layout::

    nsasa/
    ├── config.py          # YAML → typed Python config (scoring weights)
    ├── constants.py       # Profile completion, level parsing, medals
    ├── errors.py          # PortalError hierarchy → HTTP status + code
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine, session helper, run_db
    │   └── models.py      # ORM models (8 tables)
    ├── engine/
    │   ├── policy.py      # Role → action permission table
    │   ├── lifecycle.py   # Approval / role / poll transition rules
    │   ├── polls.py       # Poll validation + tally
    │   ├── scoring.py     # Leaderboard score, stats, badges
    │   └── events.py      # EntityChanged + ChangeBus
    ├── services/
    │   ├── account_service.py     # Registration, approval, roles
    │   ├── content_service.py     # Posts, moderation, likes
    │   ├── poll_service.py        # Poll lifecycle, voting
    │   ├── engagement_service.py  # Activity counters, leaderboard
    │   └── audit_service.py       # admin_log writes and reads
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT → Actor, engine/config dependencies
        └── routes/        # accounts, content, polls, public, admin
"""

__version__ = "1.0.0"

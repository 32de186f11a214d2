"""
Spotwheel — Game Rounds, Spots & Proof Tickets for Discord
============================================================
Runs numbered community games on a Discord server: every game gets its
own role and channel, members sign up and complete tasks, submit proof in
private ticket channels, and earn Spots when an admin approves.  Scores
live in a single JSON document and are rendered into dashboards that the
bot keeps editing in place.

Package layout::

    spotwheel/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Task ids, custom ids, naming patterns
    ├── storage/
    │   ├── models.py      # GameState / Participant / MessageRef
    │   └── store.py       # JSON document store + async bridge
    ├── engine/
    │   ├── errors.py      # Domain exception hierarchy
    │   ├── ledger.py      # Spots bookkeeping (pure functions)
    │   └── tickets.py     # Ticket metadata + lifecycle
    ├── services/
    │   ├── game_service.py      # Store-backed game mutations
    │   ├── render.py            # Dashboard text builders
    │   ├── dashboard_service.py # Keep dashboards/buttons in sync
    │   ├── provisioning.py      # Roles and channels
    │   ├── ticket_service.py    # Ticket open/approve/reject/close
    │   └── audit_service.py     # Log channel + DMs
    └── bot/
        ├── core.py        # Bot subclass, cog loader, persistent views
        ├── views.py       # Buttons and the reject modal
        └── cogs/
            ├── games.py   # /newgame, /setupgame, /setspots, …
            └── tasks.py   # Periodic dashboard refresh
"""

__version__ = "0.1.0"

"""
LootGoblin - Discord Event and Loot Organizer

LootGoblin lets guild administrators choose where the bot posts and who may
organize events, and lets organizers create timed group events (raids, loot
runs) and drive them through their lifecycle.

Core Components:

- **Guild Settings**: Per-server event/loot channels and organizer/participant
  roles, persisted in SQLite and cached for permission checks
- **Permission Gate**: Role checks run before every organizer command
- **Event Lifecycle**: Created → Active ⇄ Paused → Completed, with Cancelled
  reachable from every state but itself
- **Participant Channels**: Channels tracked for participation, editable
  while an event has not started

Usage:
    from lootgoblin.main import main
    main()  # Starts the bot
"""

__version__ = "0.1.0"

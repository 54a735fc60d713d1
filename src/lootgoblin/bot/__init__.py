"""
Discord-facing layer of LootGoblin.

- **bot_helper.py**: Shared cog plumbing: guild context checks, running the
  organizer permission gate for the invoking member, and turning
  OperationResults and storage failures into user-facing replies.

- **cogs/**: Slash-command cogs, each exposing a ``setup(bot)`` function.
"""

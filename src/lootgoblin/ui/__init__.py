"""
Discord embeds for LootGoblin.

- **event_embed.py**: The public event embed (coloured by lifecycle state and
  refreshed after each transition), the event list summary, and the guild
  settings overview shown by /admin settings.
"""

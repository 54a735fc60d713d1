"""Plain data types shared across LootGoblin: Discord ids, settings, events and operation results."""

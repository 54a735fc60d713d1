"""
Cogs package for LootGoblin.
Contains the /admin and /event command groups.
Each module defines a cog class and a setup function to register it with the bot.
The cogs are loaded explicitly in main.py to avoid dynamic imports.
"""

"""Static reward tables: demos, badges, quests and levels."""

"""Conversation, memory and result storage: in-memory, SQLite and an indexed result store."""
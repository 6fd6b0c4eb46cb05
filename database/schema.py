# ======================= ITEMS ==========================

item_schema = '''
    CREATE TABLE IF NOT EXISTS items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        type TEXT NOT NULL,
        source TEXT NOT NULL,
        meaning TEXT NOT NULL,
        notes TEXT,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
'''

item_source_index = '''
    CREATE INDEX IF NOT EXISTS idx_items_source ON items(source)
'''

# ======================= STUDY STATES ===================

# One row per (item, direction). interval = 0 means never recalled
# or reset by a miss.
study_state_schema = '''
    CREATE TABLE IF NOT EXISTS study_states (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        item_id INTEGER NOT NULL,
        direction TEXT NOT NULL,
        interval INTEGER NOT NULL DEFAULT 0,
        ease REAL NOT NULL DEFAULT 2.5,
        due TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        suspended INTEGER NOT NULL DEFAULT 0,

        FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE,
        UNIQUE (item_id, direction)
    )
'''

# ======================= DECKS ==========================

deck_schema = '''
    CREATE TABLE IF NOT EXISTS decks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        study_direction TEXT NOT NULL DEFAULT 'random',
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
'''

deck_item_schema = '''
    CREATE TABLE IF NOT EXISTS deck_items (
        deck_id INTEGER NOT NULL,
        item_id INTEGER NOT NULL,

        PRIMARY KEY (deck_id, item_id),
        FOREIGN KEY (deck_id) REFERENCES decks(id) ON DELETE CASCADE,
        FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE
    )
'''

# ======================= DEFAULT DATA ===================

DEFAULT_DECK_ID = 1
DEFAULT_DECK_NAME = 'All'

default_deck_insert = f'''
    INSERT OR IGNORE INTO decks (id, name) VALUES ({DEFAULT_DECK_ID}, '{DEFAULT_DECK_NAME}')
'''

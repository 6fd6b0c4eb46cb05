import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from database.errors import ValidationError
from database.schema import (
    item_schema, item_source_index, study_state_schema, deck_schema, deck_item_schema,
    default_deck_insert, DEFAULT_DECK_ID, DEFAULT_DECK_NAME,
)
from config import DB_PATH
from study.models import Direction, ItemKind, StudyDirection, format_timestamp

DECK_NAME_MAX = 50
ITEM_TEXT_MAX = 1000


def utcnow() -> datetime:
    """Naive UTC, the same clock SQLite's datetime('now') uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _now_param(now: datetime | None) -> str:
    return format_timestamp(now or utcnow())


# ITEM COMMANDS ==============================================

def _validate_item(kind, source, meaning) -> tuple[str, str, str]:
    try:
        kind = ItemKind(kind).value
    except ValueError:
        raise ValidationError(f'Unknown item type "{kind}"') from None

    source = (source or '').strip()
    meaning = (meaning or '').strip()
    if not source:
        raise ValidationError("Word can't be empty")
    if not meaning:
        raise ValidationError("Meaning can't be empty")
    if len(source) > ITEM_TEXT_MAX or len(meaning) > ITEM_TEXT_MAX:
        raise ValidationError(f"Each side can be up to {ITEM_TEXT_MAX} characters")
    return kind, source, meaning


def create_item(kind, source, meaning, notes=None, deck_ids=None):
    """
    Insert an item with both study states and its deck memberships.
    The All deck is always included. Returns the new item id.
    """
    kind, source, meaning = _validate_item(kind, source, meaning)
    notes = (notes or '').strip() or None

    all_deck_ids = [DEFAULT_DECK_ID]
    for deck_id in deck_ids or []:
        if deck_id not in all_deck_ids:
            all_deck_ids.append(deck_id)

    with get_db() as conn:
        cursor = conn.cursor()
        placeholders = ', '.join('?' * len(all_deck_ids))
        cursor.execute(f'SELECT id FROM decks WHERE id IN ({placeholders})', all_deck_ids)
        missing = set(all_deck_ids) - {row['id'] for row in cursor.fetchall()}
        if missing:
            logging.warning(f"Item rejected, unknown decks {sorted(missing)}")
            raise ValidationError("That deck no longer exists")

        cursor.execute(
            'INSERT INTO items (type, source, meaning, notes) VALUES (?, ?, ?, ?)',
            (kind, source, meaning, notes)
        )
        item_id = cursor.lastrowid

        for direction in Direction:
            cursor.execute(
                'INSERT INTO study_states (item_id, direction) VALUES (?, ?)',
                (item_id, direction.value)
            )

        cursor.executemany(
            'INSERT OR IGNORE INTO deck_items (deck_id, item_id) VALUES (?, ?)',
            [(deck_id, item_id) for deck_id in all_deck_ids]
        )

    logging.info(f"Created item {item_id} ({kind}) in decks {all_deck_ids}")
    return item_id


def get_item(item_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT * FROM items WHERE id = ?', (item_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


def update_item(item_id, kind, source, meaning, notes=None):
    """Direct edit of an item's text. Study states are left as they are."""
    kind, source, meaning = _validate_item(kind, source, meaning)
    notes = (notes or '').strip() or None

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'UPDATE items SET type = ?, source = ?, meaning = ?, notes = ? WHERE id = ?',
            (kind, source, meaning, notes, item_id)
        )
        return cursor.rowcount > 0


def delete_item(item_id):
    """Study states and deck memberships go with it (ON DELETE CASCADE)."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('DELETE FROM items WHERE id = ?', (item_id,))
        deleted = cursor.rowcount > 0
    if deleted:
        logging.info(f"Deleted item {item_id}")
    return deleted


def get_items_in_deck(deck_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT i.* FROM items i
               JOIN deck_items di ON di.item_id = i.id
               WHERE di.deck_id = ?
               ORDER BY i.source COLLATE NOCASE
            """,
            (deck_id,)
        )
        return [dict(row) for row in cursor.fetchall()]


def get_items_not_in_deck(deck_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT * FROM items
               WHERE id NOT IN (SELECT item_id FROM deck_items WHERE deck_id = ?)
               ORDER BY source COLLATE NOCASE
            """,
            (deck_id,)
        )
        return [dict(row) for row in cursor.fetchall()]


# DECKS COMMANDS =============================================

def _validate_deck_name(name, exclude_id=None) -> str:
    name = (name or '').strip()
    if not name:
        raise ValidationError("Deck name can't be empty")
    if len(name) > DECK_NAME_MAX:
        raise ValidationError(f"Deck name is too long ({DECK_NAME_MAX} characters max)")
    if name.lower() == DEFAULT_DECK_NAME.lower():
        raise ValidationError(f'"{DEFAULT_DECK_NAME}" is a reserved name')
    if deck_name_exists(name, exclude_id):
        raise ValidationError(f'A deck called "{name}" already exists')
    return name


def _reject_default_deck(deck_id, action):
    if deck_id == DEFAULT_DECK_ID:
        logging.warning(f"Refused to {action} the {DEFAULT_DECK_NAME} deck")
        raise ValidationError(f'Cannot {action} the "{DEFAULT_DECK_NAME}" deck')


def deck_name_exists(name, exclude_id=None):
    with get_db() as conn:
        cursor = conn.cursor()
        if exclude_id is None:
            cursor.execute(
                'SELECT 1 FROM decks WHERE name = ? COLLATE NOCASE LIMIT 1',
                (name.strip(),)
            )
        else:
            cursor.execute(
                'SELECT 1 FROM decks WHERE name = ? COLLATE NOCASE AND id != ? LIMIT 1',
                (name.strip(), exclude_id)
            )
        return cursor.fetchone() is not None


def create_deck(name):
    name = _validate_deck_name(name)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('INSERT INTO decks (name) VALUES (?)', (name,))
        deck_id = cursor.lastrowid
    logging.info(f"Created deck {deck_id}: {name}")
    return deck_id


def rename_deck(deck_id, name):
    _reject_default_deck(deck_id, 'rename')
    name = _validate_deck_name(name, exclude_id=deck_id)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('UPDATE decks SET name = ? WHERE id = ?', (name, deck_id))
        return cursor.rowcount > 0


def delete_deck(deck_id):
    """Removes the deck and its memberships. Items stay in the collection."""
    _reject_default_deck(deck_id, 'delete')
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('DELETE FROM decks WHERE id = ?', (deck_id,))
        deleted = cursor.rowcount > 0
    if deleted:
        logging.info(f"Deleted deck {deck_id}")
    return deleted


def get_deck(deck_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT d.id, d.name, d.study_direction, d.created_at,
                      COUNT(di.item_id) AS item_count
               FROM decks d
               LEFT JOIN deck_items di ON di.deck_id = d.id
               WHERE d.id = ?
               GROUP BY d.id
            """,
            (deck_id,)
        )
        row = cursor.fetchone()
        return dict(row) if row else None


def get_deck_name(deck_id):
    deck = get_deck(deck_id)
    return deck['name'] if deck else None


def get_all_decks(now=None):
    """All decks with item and due counts, the All deck first."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT d.id, d.name, d.study_direction,
                      (SELECT COUNT(*) FROM deck_items di WHERE di.deck_id = d.id) AS item_count,
                      (SELECT COUNT(*) FROM deck_items di
                         JOIN study_states ss ON ss.item_id = di.item_id
                        WHERE di.deck_id = d.id
                          AND ss.suspended = 0
                          AND ss.due <= ?) AS due_count
               FROM decks d
               ORDER BY d.id != ?, d.name COLLATE NOCASE
            """,
            (_now_param(now), DEFAULT_DECK_ID)
        )
        return [dict(row) for row in cursor.fetchall()]


def set_deck_study_direction(deck_id, direction):
    direction = StudyDirection(direction).value
    with get_db() as conn:
        conn.execute('UPDATE decks SET study_direction = ? WHERE id = ?', (direction, deck_id))


def add_items_to_deck(deck_id, item_ids):
    if not item_ids:
        return
    with get_db() as conn:
        conn.executemany(
            'INSERT OR IGNORE INTO deck_items (deck_id, item_id) VALUES (?, ?)',
            [(deck_id, item_id) for item_id in item_ids]
        )


def remove_item_from_deck(deck_id, item_id):
    _reject_default_deck(deck_id, 'remove items from')
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'DELETE FROM deck_items WHERE deck_id = ? AND item_id = ?',
            (deck_id, item_id)
        )
        return cursor.rowcount > 0


# STUDY COMMANDS =============================================

_STUDY_CARD_SELECT = """
    SELECT ss.id AS review_state_id,
           ss.item_id,
           ss.direction,
           i.source,
           i.meaning AS target,
           i.type AS kind,
           ss.interval,
           ss.ease,
           ss.due
    FROM study_states ss
    JOIN items i ON i.id = ss.item_id
    JOIN deck_items di ON di.item_id = i.id
    WHERE di.deck_id = ?
      AND ss.suspended = 0
      AND (? IS NULL OR ss.direction = ?)
"""

# Standard sessions keep the order they are loaded in, so vary it here
_RANDOM_ORDER = " ORDER BY RANDOM()"


def _direction_param(direction):
    return Direction(direction).value if direction is not None else None


def get_due_review_cards(deck_id, direction=None, now=None):
    """Unsuspended study states of the deck with due <= now, in random order."""
    direction = _direction_param(direction)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            _STUDY_CARD_SELECT + ' AND ss.due <= ?' + _RANDOM_ORDER,
            (deck_id, direction, direction, _now_param(now))
        )
        return [dict(row) for row in cursor.fetchall()]


def get_all_review_cards(deck_id, direction=None):
    """Same as get_due_review_cards without the due filter."""
    direction = _direction_param(direction)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(_STUDY_CARD_SELECT + _RANDOM_ORDER, (deck_id, direction, direction))
        return [dict(row) for row in cursor.fetchall()]


def get_review_state(review_state_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT * FROM study_states WHERE id = ?', (review_state_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


_UPDATE_STATE_SQL = 'UPDATE study_states SET interval = ?, ease = ?, due = ? WHERE id = ?'


def update_review_state(review_state_id, interval, ease, due):
    """Returns the affected row count; 0 when the state no longer exists."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(_UPDATE_STATE_SQL, (interval, ease, format_timestamp(due), review_state_id))
        return cursor.rowcount


def apply_review(review_state_id, reschedule, now=None):
    """
    Read-modify-write of one study state in a single write transaction.

    reschedule(interval, ease) must return an object with interval, ease
    and due attributes. Returns the affected row count (0 if missing).
    """
    with get_db() as conn:
        conn.execute('BEGIN IMMEDIATE')
        row = conn.execute(
            'SELECT interval, ease FROM study_states WHERE id = ?',
            (review_state_id,)
        ).fetchone()
        if row is None:
            return 0

        result = reschedule(row['interval'], row['ease'])
        cursor = conn.execute(
            _UPDATE_STATE_SQL,
            (result.interval, result.ease, format_timestamp(result.due), review_state_id)
        )
        return cursor.rowcount


def set_suspended(review_state_id, suspended):
    """Store-level switch only; no bot screen suspends cards yet."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'UPDATE study_states SET suspended = ? WHERE id = ?',
            (1 if suspended else 0, review_state_id)
        )
        return cursor.rowcount > 0


# STATS COMMANDS =============================================

def get_collection_stats(now=None):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT
                   COUNT(*) AS items,
                   SUM(type = 'word') AS word,
                   SUM(type = 'prefix') AS prefix,
                   SUM(type = 'suffix') AS suffix,
                   SUM(type = 'root') AS root,
                   SUM(type = 'particle') AS particle
               FROM items
            """
        )
        stats = {k: (v or 0) for k, v in dict(cursor.fetchone()).items()}

        cursor.execute(
            """SELECT
                   SUM(interval = 0) AS unlearned,
                   SUM(due <= ?) AS due_now
               FROM study_states WHERE suspended = 0
            """,
            (_now_param(now),)
        )
        stats.update({k: (v or 0) for k, v in dict(cursor.fetchone()).items()})
        return stats


def get_forecast(days=7, now=None):
    now = now or utcnow()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT date(due) AS day, COUNT(*) AS cnt
               FROM study_states
               WHERE suspended = 0
                 AND due > ?
                 AND due <= ?
               GROUP BY date(due)
               ORDER BY day
            """,
            (format_timestamp(now), format_timestamp(now + timedelta(days=days)))
        )
        rows = {row['day']: row['cnt'] for row in cursor.fetchall()}

    today = now.date()
    return [
        {'day': (today + timedelta(d)).isoformat(), 'count': rows.get((today + timedelta(d)).isoformat(), 0)}
        for d in range(1, days + 1)
    ]


# DB CONNECTION ==============================================

@contextmanager
def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute('PRAGMA foreign_keys = ON')

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    with get_db() as conn:
        conn.execute(item_schema)
        conn.execute(item_source_index)
        conn.execute(study_state_schema)
        conn.execute(deck_schema)
        conn.execute(deck_item_schema)
        conn.execute(default_deck_insert)

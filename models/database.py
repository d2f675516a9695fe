"""SQLite database for the ticket snapshot, evaluator settings, and alert records."""
import json
import sqlite3
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from models.alerts import Alert
from models.enums import AlertStatus
from models.errors import DataSourceUnavailable, PersistenceConflict
from models.tickets import Product, RepairCenter, Ticket, format_db_timestamp

logger = logging.getLogger("repairwatch.db")

_TICKET_SELECT = """
    SELECT t.*,
           p.sku AS product_sku,
           p.name AS product_name,
           rc.name AS repair_center_name
    FROM tickets t
    LEFT JOIN products p ON p.id = t.product_id
    LEFT JOIN repair_centers rc ON rc.id = t.repair_center_id
"""


class Database:
    def __init__(self, db_path="data/repairwatch.db"):
        self.db_path = db_path
        self.conn = None
        # One connection shared by the CLI, the scheduler thread and detector workers.
        self._lock = threading.RLock()

    def connect(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._create_tables()
        return self

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                sku TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS repair_centers (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS tickets (
                id TEXT PRIMARY KEY,
                ticket_number INTEGER,
                product_id TEXT NOT NULL,
                repair_center_id TEXT,
                owner_id TEXT,
                customer_email TEXT,
                serial_number TEXT,
                ticket_type TEXT NOT NULL,
                status TEXT NOT NULL,
                warranty_eligible INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_tickets_created
                ON tickets(created_at);
            CREATE INDEX IF NOT EXISTS idx_tickets_status
                ON tickets(status, updated_at);
            CREATE INDEX IF NOT EXISTS idx_tickets_center
                ON tickets(repair_center_id);

            CREATE TABLE IF NOT EXISTS manager_settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS alerts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                type TEXT NOT NULL,
                correlation_key TEXT NOT NULL,
                severity TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                product_id TEXT,
                ticket_id TEXT,
                repair_center_id TEXT,
                metric_value REAL,
                threshold REAL,
                status TEXT NOT NULL DEFAULT 'OPEN',
                resolution_note TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- At most one OPEN alert per (type, correlation_key)
            CREATE UNIQUE INDEX IF NOT EXISTS idx_alerts_open_key
                ON alerts(type, correlation_key) WHERE status = 'OPEN';
            CREATE INDEX IF NOT EXISTS idx_alerts_created
                ON alerts(created_at);
        """)
        self.conn.commit()

    @contextmanager
    def _reading(self, what):
        """Serialize access and surface sqlite failures as DataSourceUnavailable."""
        try:
            with self._lock:
                yield
        except sqlite3.Error as e:
            raise DataSourceUnavailable(f"{what}: {e}") from e

    # --- Snapshot (products, repair centers, tickets) ---

    def save_products(self, products):
        with self._lock:
            self.conn.executemany(
                "INSERT OR REPLACE INTO products (id, name, sku) VALUES (?, ?, ?)",
                [(p.id, p.name, p.sku) for p in products],
            )
            self.conn.commit()
        logger.debug(f"Saved {len(products)} products")

    def save_repair_centers(self, centers):
        with self._lock:
            self.conn.executemany(
                "INSERT OR REPLACE INTO repair_centers (id, name) VALUES (?, ?)",
                [(c.id, c.name) for c in centers],
            )
            self.conn.commit()
        logger.debug(f"Saved {len(centers)} repair centers")

    def save_tickets(self, tickets):
        rows = [t.to_dict() for t in tickets]
        with self._lock:
            self.conn.executemany("""
                INSERT OR REPLACE INTO tickets
                (id, ticket_number, product_id, repair_center_id, owner_id, customer_email,
                 serial_number, ticket_type, status, warranty_eligible, created_at, updated_at)
                VALUES (:id, :ticket_number, :product_id, :repair_center_id, :owner_id,
                        :customer_email, :serial_number, :ticket_type, :status,
                        :warranty_eligible, :created_at, :updated_at)
            """, rows)
            self.conn.commit()
        logger.debug(f"Saved {len(rows)} tickets")

    def get_tickets_created_since(self, since, ticket_type=None, warranty_eligible=None):
        """Tickets created at or after `since`, optionally filtered by type and warranty flag."""
        query = _TICKET_SELECT + " WHERE t.created_at >= ?"
        params = [format_db_timestamp(since)]
        if ticket_type is not None:
            query += " AND t.ticket_type = ?"
            params.append(getattr(ticket_type, "value", ticket_type))
        if warranty_eligible is not None:
            query += " AND t.warranty_eligible = ?"
            params.append(int(bool(warranty_eligible)))
        with self._reading("tickets created since"):
            rows = self.conn.execute(query, params).fetchall()
        return [Ticket.from_dict(dict(r)) for r in rows]

    def get_tickets_by_status(self, status, updated_before=None):
        """Tickets currently in `status`, optionally last updated strictly before a cutoff."""
        query = _TICKET_SELECT + " WHERE t.status = ?"
        params = [getattr(status, "value", status)]
        if updated_before is not None:
            query += " AND t.updated_at < ?"
            params.append(format_db_timestamp(updated_before))
        with self._reading("tickets by status"):
            rows = self.conn.execute(query, params).fetchall()
        return [Ticket.from_dict(dict(r)) for r in rows]

    def get_tickets_for_center(self, center_id):
        with self._reading("repair center tickets"):
            rows = self.conn.execute(
                _TICKET_SELECT + " WHERE t.repair_center_id = ?", (center_id,)
            ).fetchall()
        return [Ticket.from_dict(dict(r)) for r in rows]

    def get_repair_centers(self):
        with self._reading("repair centers"):
            rows = self.conn.execute("SELECT * FROM repair_centers ORDER BY name").fetchall()
        return [RepairCenter(id=r["id"], name=r["name"]) for r in rows]

    def get_products(self):
        with self._reading("products"):
            rows = self.conn.execute("SELECT * FROM products ORDER BY sku").fetchall()
        return [Product(id=r["id"], name=r["name"], sku=r["sku"]) for r in rows]

    # --- Settings ---

    def get_setting(self, key):
        with self._lock:
            row = self.conn.execute(
                "SELECT value FROM manager_settings WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def put_setting(self, key, value):
        with self._lock:
            self.conn.execute("""
                INSERT INTO manager_settings (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
            """, (key, json.dumps(value), datetime.now(timezone.utc).isoformat()))
            self.conn.commit()

    # --- Alerts ---

    def find_open_alert(self, rule_type, correlation_key):
        with self._lock:
            row = self.conn.execute("""
                SELECT * FROM alerts
                WHERE type = ? AND correlation_key = ? AND status = 'OPEN'
            """, (rule_type.value, correlation_key)).fetchone()
        return Alert.from_row(row) if row else None

    def insert_alert(self, alert):
        """Insert a new alert and return it with its id. Raises PersistenceConflict
        when an OPEN alert for the same key already exists."""
        d = alert.to_dict()
        with self._lock:
            try:
                cur = self.conn.execute("""
                    INSERT INTO alerts
                    (type, correlation_key, severity, title, description, product_id,
                     ticket_id, repair_center_id, metric_value, threshold, status,
                     resolution_note, created_at, updated_at)
                    VALUES (:type, :correlation_key, :severity, :title, :description,
                            :product_id, :ticket_id, :repair_center_id, :metric_value,
                            :threshold, :status, :resolution_note, :created_at, :updated_at)
                """, d)
                self.conn.commit()
            except sqlite3.IntegrityError as e:
                self.conn.rollback()
                raise PersistenceConflict(
                    f"open {d['type']} alert already exists for key {d['correlation_key']}"
                ) from e
        alert.id = cur.lastrowid
        return alert

    def update_open_alert(self, alert_id, metric_value, severity, description, updated_at):
        """Refresh an alert in place. Raises PersistenceConflict if it is no longer OPEN."""
        with self._lock:
            cur = self.conn.execute("""
                UPDATE alerts
                SET metric_value = ?, severity = ?, description = ?, updated_at = ?
                WHERE id = ? AND status = 'OPEN'
            """, (metric_value, severity.value, description,
                  format_db_timestamp(updated_at), alert_id))
            self.conn.commit()
        if cur.rowcount != 1:
            raise PersistenceConflict(f"alert {alert_id} is no longer open")

    def set_alert_status(self, alert_id, expected_status, new_status, updated_at,
                         resolution_note=None):
        """Conditional status write. Returns False if the row's status moved on."""
        with self._lock:
            cur = self.conn.execute("""
                UPDATE alerts
                SET status = ?, resolution_note = COALESCE(?, resolution_note), updated_at = ?
                WHERE id = ? AND status = ?
            """, (new_status.value, resolution_note, format_db_timestamp(updated_at),
                  alert_id, expected_status.value))
            self.conn.commit()
        return cur.rowcount == 1

    def get_alert(self, alert_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM alerts WHERE id = ?", (alert_id,)
            ).fetchone()
        return Alert.from_row(row) if row else None

    def list_alerts(self, status=None, rule_type=None, severity=None, limit=None):
        """Alerts newest first, filtered by any combination of status, type and severity."""
        query = "SELECT * FROM alerts WHERE 1=1"
        params = []
        if status:
            query += " AND status = ?"
            params.append(getattr(status, "value", status))
        if rule_type:
            query += " AND type = ?"
            params.append(getattr(rule_type, "value", rule_type))
        if severity:
            query += " AND severity = ?"
            params.append(getattr(severity, "value", severity))
        query += " ORDER BY created_at DESC, id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
        return [Alert.from_row(r) for r in rows]

    def count_open_alerts(self):
        with self._lock:
            row = self.conn.execute(
                "SELECT COUNT(*) AS cnt FROM alerts WHERE status = ?", (AlertStatus.OPEN.value,)
            ).fetchone()
        return row["cnt"]

import sqlite3

import pytest
from fastapi.testclient import TestClient

from main import app, get_low_stock_threshold, get_pool

SCHEMA = """
    CREATE TABLE categorias (id INTEGER PRIMARY KEY, nombre TEXT NOT NULL);
    CREATE TABLE proveedores (id INTEGER PRIMARY KEY, nombre TEXT NOT NULL);
    CREATE TABLE productos (
        id INTEGER PRIMARY KEY,
        sku TEXT NOT NULL UNIQUE,
        descripcion TEXT,
        costo REAL NOT NULL,
        precio REAL NOT NULL,
        categoria_id INTEGER NULL REFERENCES categorias(id),
        proveedor_id INTEGER NULL REFERENCES proveedores(id)
    );
    CREATE TABLE inventario (producto_id INTEGER PRIMARY KEY REFERENCES productos(id), cantidad INTEGER NOT NULL);
"""

CATEGORIAS = [(1, " Tools "), (2, "Paint"), (3, "Tools  ")]
PROVEEDORES = [(1, "Acme"), (2, " Sur ")]

# id, sku, descripcion, costo, precio, categoria_id, proveedor_id, cantidad (None = no inventory row)
PRODUCTOS = [
    (1, "A-001", "Hammer", 10, 15, 1, 1, 5),
    (2, "A-002", "Saw", 20, 30, 1, 1, 12),
    (3, "A-003", "Drill", 50, 80, 3, 2, 3),
    (4, "B-001", "White paint", 8, 12, 2, 2, 40),
    (5, "B-002", "Red paint", 9, 13, 2, None, 0),
    (6, "B-003", "Brush", 2, 4, 2, None, None),
    (7, "C-001", "Screws", 0.5, 1, None, 1, 200),
    (8, "C-002", "Nails", 0.25, 0.5, None, 2, 150),
    (9, "C-003", "Glue", 3, 5, None, None, 10),
    (10, "D-001", "Tape", 1.5, 3, 1, 1, None),
    (11, "D-002", "Level", 12, 20, 3, 1, 7),
    (12, "D-003", "Ladder", 60, 90, 1, 2, 2),
]


class SqliteCursor:
    """DictCursor look-alike over sqlite3, translating the %s paramstyle."""

    def __init__(self, conn):
        self._cur = conn.cursor()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self._cur.close()

    def execute(self, sql, params=()):
        self._cur.execute(sql.replace("%s", "?"), list(params))

    def fetchall(self):
        return [dict(row) for row in self._cur.fetchall()]


class SqliteConnection:
    def __init__(self, conn):
        self._conn = conn
        self.closed = False

    def cursor(self):
        return SqliteCursor(self._conn)

    def close(self):
        self.closed = True


class SqlitePool:
    def __init__(self, conn):
        self._conn = conn
        self.checkouts = []

    def connect(self):
        conn = SqliteConnection(self._conn)
        self.checkouts.append(conn)
        return conn

    def dispose(self):
        self._conn.close()


def seed(conn, productos=PRODUCTOS):
    conn.executescript(SCHEMA)
    conn.executemany("INSERT INTO categorias VALUES (?, ?)", CATEGORIAS)
    conn.executemany("INSERT INTO proveedores VALUES (?, ?)", PROVEEDORES)
    for pid, sku, desc, costo, precio, cat, prov, cantidad in productos:
        conn.execute(
            "INSERT INTO productos VALUES (?, ?, ?, ?, ?, ?, ?)",
            (pid, sku, desc, costo, precio, cat, prov),
        )
        if cantidad is not None:
            conn.execute("INSERT INTO inventario VALUES (?, ?)", (pid, cantidad))
    conn.commit()


@pytest.fixture
def pool():
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    seed(conn)
    pool = SqlitePool(conn)
    yield pool
    pool.dispose()


@pytest.fixture
def client(pool):
    app.dependency_overrides[get_pool] = lambda: pool
    app.dependency_overrides[get_low_stock_threshold] = lambda: 10
    yield TestClient(app)
    app.dependency_overrides.clear()

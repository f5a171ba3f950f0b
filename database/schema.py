SCHEMA = """
CREATE TABLE IF NOT EXISTS customers (
    id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT UNIQUE,
    phone TEXT UNIQUE,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS wallets (
    customer_id TEXT PRIMARY KEY,
    stamps INTEGER NOT NULL DEFAULT 0 CHECK (stamps >= 0),
    last_redeemed_at TEXT,
    last_stamped_at TEXT,
    FOREIGN KEY (customer_id) REFERENCES customers(id)
);

CREATE INDEX IF NOT EXISTS idx_customer_email ON customers(email);
CREATE INDEX IF NOT EXISTS idx_customer_phone ON customers(phone);
"""

# Columns added after the first release; applied with ALTER TABLE when an
# older store is opened.
WALLET_COLUMN_MIGRATIONS = {
    "last_stamped_at": "ALTER TABLE wallets ADD COLUMN last_stamped_at TEXT",
}

# Supabase migration. Timestamps are timestamptz so PostgREST equality
# filters compare instants rather than strings.
POSTGRES_SCHEMA = """
CREATE TABLE IF NOT EXISTS customers (
    id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT UNIQUE,
    phone TEXT UNIQUE,
    created_at TIMESTAMPTZ DEFAULT now(),
    CHECK (email IS NOT NULL OR phone IS NOT NULL)
);

CREATE TABLE IF NOT EXISTS wallets (
    customer_id TEXT PRIMARY KEY REFERENCES customers(id),
    stamps INTEGER NOT NULL DEFAULT 0 CHECK (stamps >= 0),
    last_redeemed_at TIMESTAMPTZ,
    last_stamped_at TIMESTAMPTZ
);

ALTER TABLE wallets ADD COLUMN IF NOT EXISTS last_stamped_at TIMESTAMPTZ;

CREATE INDEX IF NOT EXISTS idx_customer_email ON customers(email);
CREATE INDEX IF NOT EXISTS idx_customer_phone ON customers(phone);
"""

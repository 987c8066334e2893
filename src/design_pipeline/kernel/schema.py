"""
SQLite schema for the design pipeline

design_events is append-only. Its seq column gives a total insertion order
used to break created_at ties, and the partial unique index
one_accept_or_reject_per_bid allows a single terminal decision per bid.
"""

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS designs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        collection_id TEXT,
        title TEXT NOT NULL DEFAULT '',
        complexity TEXT NOT NULL DEFAULT 'SIMPLE',
        created_at TEXT NOT NULL,
        deleted_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_designs_collection ON designs(collection_id)",
    """
    CREATE TABLE IF NOT EXISTS pricing_cost_inputs (
        id TEXT PRIMARY KEY,
        design_id TEXT NOT NULL REFERENCES designs(id),
        created_at TEXT NOT NULL,
        expires_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pricing_quotes (
        id TEXT PRIMARY KEY,
        design_id TEXT NOT NULL REFERENCES designs(id),
        units INTEGER NOT NULL,
        unit_cost_cents INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pricing_quote_processes (
        quote_id TEXT NOT NULL REFERENCES pricing_quotes(id),
        name TEXT NOT NULL,
        PRIMARY KEY (quote_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS team_users (
        id TEXT PRIMARY KEY,
        team_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        UNIQUE (team_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS collaborators (
        id TEXT PRIMARY KEY,
        design_id TEXT NOT NULL REFERENCES designs(id),
        user_id TEXT,
        team_id TEXT,
        role TEXT NOT NULL,
        created_at TEXT NOT NULL,
        cancelled_at TEXT,
        CHECK ((user_id IS NULL) <> (team_id IS NULL))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bids (
        id TEXT PRIMARY KEY,
        quote_id TEXT NOT NULL REFERENCES pricing_quotes(id),
        created_at TEXT NOT NULL,
        created_by TEXT NOT NULL,
        due_date TEXT,
        description TEXT,
        bid_price_cents INTEGER NOT NULL DEFAULT 0,
        assignee_type TEXT NOT NULL,
        assignee_id TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_bids_quote ON bids(quote_id)",
    """
    CREATE TABLE IF NOT EXISTS bid_task_types (
        bid_id TEXT NOT NULL REFERENCES bids(id),
        task_type TEXT NOT NULL,
        PRIMARY KEY (bid_id, task_type)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bid_rejections (
        id TEXT PRIMARY KEY,
        bid_id TEXT NOT NULL UNIQUE REFERENCES bids(id),
        created_at TEXT NOT NULL,
        created_by TEXT NOT NULL,
        price_too_low INTEGER NOT NULL,
        deadline_too_short INTEGER NOT NULL,
        missing_information INTEGER NOT NULL,
        other INTEGER NOT NULL,
        notes TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS design_approval_steps (
        id TEXT PRIMARY KEY,
        design_id TEXT NOT NULL REFERENCES designs(id),
        title TEXT NOT NULL,
        ordering INTEGER NOT NULL,
        type TEXT NOT NULL,
        state TEXT NOT NULL,
        reason TEXT,
        started_at TEXT,
        completed_at TEXT,
        due_at TEXT,
        collaborator_id TEXT REFERENCES collaborators(id),
        team_user_id TEXT REFERENCES team_users(id),
        created_at TEXT NOT NULL,
        UNIQUE (design_id, ordering)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS design_approval_submissions (
        id TEXT PRIMARY KEY,
        step_id TEXT NOT NULL REFERENCES design_approval_steps(id),
        title TEXT NOT NULL,
        artifact_type TEXT NOT NULL,
        state TEXT NOT NULL,
        collaborator_id TEXT REFERENCES collaborators(id),
        team_user_id TEXT REFERENCES team_users(id),
        created_at TEXT NOT NULL,
        deleted_at TEXT,
        CHECK (collaborator_id IS NULL OR team_user_id IS NULL)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_submissions_step ON design_approval_submissions(step_id)",
    """
    CREATE TABLE IF NOT EXISTS design_events (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL,
        actor_id TEXT NOT NULL,
        target_id TEXT,
        target_team_id TEXT,
        design_id TEXT NOT NULL REFERENCES designs(id),
        type TEXT NOT NULL,
        bid_id TEXT REFERENCES bids(id),
        quote_id TEXT REFERENCES pricing_quotes(id),
        approval_step_id TEXT REFERENCES design_approval_steps(id),
        approval_submission_id TEXT REFERENCES design_approval_submissions(id),
        comment_id TEXT,
        task_type_id TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_design_events_design ON design_events(design_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_design_events_bid ON design_events(bid_id)",
    "CREATE INDEX IF NOT EXISTS idx_design_events_step ON design_events(approval_step_id)",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS one_accept_or_reject_per_bid
    ON design_events(bid_id)
    WHERE type IN ('ACCEPT_SERVICE_BID', 'REJECT_SERVICE_BID')
    """,
    """
    CREATE TABLE IF NOT EXISTS invoices (
        id TEXT PRIMARY KEY,
        collection_id TEXT NOT NULL,
        total_cents INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS line_items (
        id TEXT PRIMARY KEY,
        invoice_id TEXT NOT NULL REFERENCES invoices(id),
        design_id TEXT NOT NULL REFERENCES designs(id),
        quote_id TEXT NOT NULL REFERENCES pricing_quotes(id),
        title TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS credit_notes (
        id TEXT PRIMARY KEY,
        invoice_id TEXT NOT NULL REFERENCES invoices(id),
        reason TEXT NOT NULL,
        total_cents INTEGER NOT NULL,
        created_by TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS credit_note_line_items (
        credit_note_id TEXT NOT NULL REFERENCES credit_notes(id),
        line_item_id TEXT NOT NULL REFERENCES line_items(id),
        PRIMARY KEY (credit_note_id, line_item_id)
    )
    """,
)

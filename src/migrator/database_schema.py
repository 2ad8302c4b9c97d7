# src/migrator/database_schema.py

DEFAULT_SCHEMA_SCRIPT = """
CREATE TABLE IF NOT EXISTS components (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    placeholder_id TEXT NOT NULL,
    original_id TEXT NOT NULL,
    type TEXT NOT NULL,           -- 'target-id' or 'section'
    found INTEGER DEFAULT 1,
    html_content TEXT NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_placeholder_id ON components(placeholder_id);
CREATE INDEX IF NOT EXISTS idx_original_id ON components(original_id);

CREATE TABLE IF NOT EXISTS placeholder_html (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    html_content TEXT NOT NULL,
    total_placeholders INTEGER NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS widgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    widget_key TEXT NOT NULL,
    widget_html TEXT NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_widget_key ON widgets(widget_key);

CREATE TABLE IF NOT EXISTS optimized_components (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    component_id INTEGER NOT NULL,
    original_html TEXT NOT NULL,
    optimized_html TEXT NOT NULL,
    original_lines INTEGER,
    optimized_lines INTEGER,
    reduction_percentage REAL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (component_id) REFERENCES components (id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_optimized_component_id ON optimized_components(component_id);

CREATE TABLE IF NOT EXISTS reconstructed_html (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    html_content TEXT NOT NULL,
    total_components INTEGER,
    total_widgets INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS html_json (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    json_content JSON NOT NULL,
    total_nodes INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS exports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id TEXT NOT NULL,
    path TEXT NOT NULL,
    public_url TEXT,
    total_nodes INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

# Every table, in an order that respects foreign keys when clearing.
ALL_TABLES = [
    "optimized_components",
    "components",
    "placeholder_html",
    "widgets",
    "reconstructed_html",
    "html_json",
    "exports",
]

# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets: keep the Neo4j password in .env (local, gitignored).

Plain NEO4J_URI / NEO4J_USERNAME / NEO4J_PASSWORD are accepted when the prefixed
names are not set.
"""

ENV_VARS = {
    # App / logging
    "TASKGRAPH_APP_NAME": "App display name (default: taskgraph).",
    "TASKGRAPH_LOG_LEVEL": "Logging level for the console (default: INFO).",
    # Paths (gitignored)
    "TASKGRAPH_DATA_DIR": "Local data directory for logs (default: .local/taskgraph).",
    # Neo4j
    "TASKGRAPH_NEO4J_URI": "Bolt/neo4j URI (default: neo4j://localhost:7687).",
    "TASKGRAPH_NEO4J_USERNAME": "Database user (default: neo4j).",
    "TASKGRAPH_NEO4J_PASSWORD": "Database password (default: password, warned about at startup).",
    "TASKGRAPH_NEO4J_DATABASE": "Database name (empty => server default).",
    # Views
    "TASKGRAPH_UPCOMING_DAYS": "Length of the upcoming window in days (default: 7, min 1).",
}

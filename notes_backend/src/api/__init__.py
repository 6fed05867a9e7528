"""Personal notes web app: session-cookie login over per-user notes."""

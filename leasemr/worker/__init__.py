"""Worker side: stateless poll, execute and report loop."""

"""Package initialization for n8n-inspector.

Having this file allows relative imports (e.g. `from .models import ...`) to
resolve under tooling (mypy/ruff) and matches the CLI usage pattern
`python -m n8n_inspector execution <id>` documented in the README.
"""

__all__ = []

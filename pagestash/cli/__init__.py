"""Command-line tools for pageStash.

- ``python -m pagestash.cli bulk-import`` runs or follows a bulk import.
- ``python -m pagestash.cli list`` lists a user's saved items.
- ``python -m pagestash.cli issue-token`` mints a session token.
"""

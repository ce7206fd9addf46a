"""
Outbound API clients.

- gateway: retrying HTTP client producing uniform ServiceResult objects
- aladin: Aladin TTB book catalog
- library_api: data4library holdings lookup
"""

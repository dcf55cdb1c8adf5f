"""Authorization gate for cluster capabilities.

Answers two questions in one pass:
- is the API group/version/kind we depend on installed (discovery)
- is the current credential (or a named subject) allowed to use it (access reviews)

Everything here is synchronous and stateless; the cluster client is injected.
"""

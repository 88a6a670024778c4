"""HTTP Directory Reconciler (HDR).

Keeps a set of HTTP polling jobs in line with a directory of TOML fragments:
 - one job per fragment, identified by its section name
 - periodic re-scan of the tree (no filesystem notifications)
 - unchanged jobs keep running, changed jobs are replaced, removed jobs stop
 - two fragments claiming the same name are reported and only one runs
"""

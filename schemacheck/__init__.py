"""
schemacheck
===========

MySQL schema drift checker.

Compares a *reference* (dev) database against a *target* (main) database and
reports what the target is missing: tables, columns, differing column
definitions, and secondary indexes. Corrective SQL is generated for review but
never executed.

Modules
-------
- :mod:`schemacheck.cli` (entry point)
- :mod:`schemacheck.config`
- :mod:`schemacheck.auth`
- :mod:`schemacheck.collectors`
- :mod:`schemacheck.diffing`
- :mod:`schemacheck.statements`
- :mod:`schemacheck.reporting`
- :mod:`schemacheck.github`
"""

__version__ = "1.0.0"

"""
Local-first content store for a school website.

The site document (config, news, events, albums, team, parents' association
activities, submissions, downloads, enrollments and pages) is kept in
memory, synchronized to a remote storage API when one is configured and
always persisted to a durable local cache.
"""

__version__ = "0.1.0"

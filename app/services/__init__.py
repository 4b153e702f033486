# Services package.
#
#   album_service  — CRUD + cover URL for Album
#   song_service   — CRUD + title/performer search for Song
#   like_service   — cache-aside like counts for Album (class-based: it
#                    holds the shared cache client and single-flight registry)
#
# The module-level service functions accept an AsyncSession as their first
# argument so that the router layer controls the transaction boundary via
# the ``get_db`` dependency.  Like mutations are the exception: they commit
# themselves so the counter cache is only invalidated after the write is
# durable.

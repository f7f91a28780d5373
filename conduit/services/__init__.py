# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for one concern:
#
#   auth_service      — sign-up, sign-in, refresh rotation, logout
#   session_store     — the single refresh-token slot per user
#   follow_service    — the directed follow graph
#   favorite_service  — user/article favorites
#   article_service   — Article CRUD and the follow feed
#   comment_service   — comments on an Article
#   user_service      — profiles and follower listings
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.

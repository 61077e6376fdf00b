# Services package.
#
# Each module exposes async functions that hold the business logic for one
# concern:
#
#   auth_service: token issue / verify / revoke
#   pending_update_service: deferred list updates and their reconciliation
#   user_service: registration, login, profiles, list mutations
#   article_service: articles, votes, feeds, random stories
#   comment_service: comments and comment votes
#
# Functions take an AsyncSession first and only flush; the ``get_db``
# dependency commits or rolls back at the end of the request.

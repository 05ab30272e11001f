"""Web Server Gateway Interface entry-point."""

from devicelink.factory import create_web_app

application = create_web_app()

from app.ytgify import create_app

app = create_app()

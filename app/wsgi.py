from app.fisio import create_app

app = create_app()

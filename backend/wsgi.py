from orderflow import create_app

app = create_app()

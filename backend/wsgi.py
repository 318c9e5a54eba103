from tablepos import create_app

app = create_app()

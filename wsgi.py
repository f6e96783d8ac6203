from longform import create_app

app = create_app()

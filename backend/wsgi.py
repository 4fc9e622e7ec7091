from chaflow import create_app

app = create_app()

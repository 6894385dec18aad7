from mija import create_app

app = create_app()

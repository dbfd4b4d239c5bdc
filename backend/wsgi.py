from opstracker import create_app

app = create_app()

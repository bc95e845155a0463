from cloudretry.cli.app import app

app()

from ohmyskills.main import app

app()

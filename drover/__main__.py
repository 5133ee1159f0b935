from drover.cli.main import run

run()

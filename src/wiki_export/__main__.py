from src.wiki_export.cli import cli

# python -m src.wiki_export --config config.json run
if __name__ == "__main__":
    cli()

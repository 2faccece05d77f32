import logging
import click

from .admin import init_database, seed, serve

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False)
def cli(verbose):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)

cli.add_command(init_database,"init-db")
cli.add_command(seed,"seed")
cli.add_command(serve,"serve")

if __name__ == '__main__':
    cli()

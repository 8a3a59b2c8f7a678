"""Entry point for `python -m niji`."""


def main():
    from niji.cli import main as run_cli
    run_cli()


if __name__ == "__main__":
    main()

def main() -> None:
    """パッケージエントリポイント。cli.main() に委譲する。

    pyproject.toml の [project.scripts] は lifeline.cli:main を直接参照するため、
    この関数はプログラムから lifeline.main() として呼び出す場合に使う。
    """
    from lifeline.cli import main as cli_main

    cli_main()

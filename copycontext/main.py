# copycontext/main.py
from copycontext.cli import app

if __name__ == "__main__":
    app(prog_name="copycontext")

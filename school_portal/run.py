import uvicorn

from school_portal import create_app

app = create_app()


def main() -> None:
    uvicorn.run("school_portal.run:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()

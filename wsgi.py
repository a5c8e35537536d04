from mediashelf import create_app, db
from mediashelf.models import User, Author, Genre, Publisher, DigitalItem, PhysicalItem
from mediashelf.services.registry import get_services

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Author": Author,
        "Genre": Genre,
        "Publisher": Publisher,
        "DigitalItem": DigitalItem,
        "PhysicalItem": PhysicalItem,
        "services": get_services(),
    }


if __name__ == '__main__':
    app.run(debug=True)

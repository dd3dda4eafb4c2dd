from catalogue.models.book import Book, BookImage
from catalogue.models.publisher import Author, Publisher, PublisherAuthor
from catalogue.models.taxonomy import BookGenreTaxonomy, GenreTaxonomy
from catalogue.models.user import User

__all__ = [
    "User",
    "Author",
    "Publisher",
    "PublisherAuthor",
    "Book",
    "BookImage",
    "GenreTaxonomy",
    "BookGenreTaxonomy",
]

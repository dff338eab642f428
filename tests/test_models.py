from app.models import (
    BookDetails,
    MovieDetails,
    RatingEntry,
    merge_details,
    replace_details,
)


def test_merge_keeps_stored_values_the_provider_omitted():
    current = {"description": "Stored blurb", "cover_image": "https://img/old.jpg", "author": "Frank Herbert"}
    patch = BookDetails(description="Fresh blurb", publisher="Chilton")

    merged = merge_details(current, patch)

    assert merged["description"] == "Fresh blurb"
    assert merged["cover_image"] == "https://img/old.jpg"
    assert merged["publisher"] == "Chilton"
    assert merged["author"] == "Frank Herbert"


def test_merge_treats_empty_lists_as_absent():
    current = {"subjects": ["Science Fiction"]}
    merged = merge_details(current, BookDetails(subjects=[]))

    assert merged["subjects"] == ["Science Fiction"]


def test_replace_clears_enrichment_fields_but_keeps_identity():
    current = {
        "description": "Old",
        "poster_image": "https://img/old.jpg",
        "director": "Denis Villeneuve",
        "tmdb_id": 438631,
    }
    patch = MovieDetails(description="New")

    replaced = replace_details(current, patch)

    assert replaced["description"] == "New"
    assert replaced["poster_image"] is None
    assert replaced["director"] == "Denis Villeneuve"
    assert replaced["tmdb_id"] == 438631


def test_column_values_serialise_ratings():
    details = BookDetails(ratings=[RatingEntry(source="Goodreads", url="https://goodreads.example")])

    values = details.column_values()

    assert values["ratings"] == [
        {
            "source": "Goodreads",
            "rating": None,
            "ratings_count": None,
            "url": "https://goodreads.example",
            "display_format": "stars",
        }
    ]
    assert values["subjects"] is None


def test_is_empty_ignores_identity_fields():
    assert BookDetails(author="Someone").is_empty()
    assert not BookDetails(description="Something").is_empty()


def test_article_subjects_lead_with_section():
    from app.models import ArticleDetails

    details = ArticleDetails(section="Technology", subjects=["Artificial Intelligence"])

    assert details.genre_subjects() == ["Technology", "Artificial Intelligence"]

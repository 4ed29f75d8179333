"""Sample movie documents shared by tests."""

MOVIES = [
    {
        "title": "Moulin Rouge!",
        "year": 2001,
        "info": {"directors": ["Baz Luhrmann"], "genres": ["Drama", "Musical"], "rating": 7.6},
    },
    {
        "title": "The Great Gatsby",
        "year": 2013,
        "info": {"directors": ["Baz Luhrmann"], "genres": ["Drama", "Romance"], "rating": 7.2},
    },
    {
        "title": "Amélie",
        "year": 2001,
        "info": {"directors": ["Jean-Pierre Jeunet"], "genres": ["Comedy", "Romance"], "rating": 8.3},
    },
    {
        "title": "Strictly Ballroom",
        "year": 1992,
        "info": {"directors": ["Baz Luhrmann"], "genres": ["Comedy", "Romance"], "rating": 3.5},
    },
    {
        "title": "Mad Max: Fury Road",
        "year": 2015,
        "info": {"directors": ["George Miller"], "genres": ["Action"], "rating": 4.1},
    },
]

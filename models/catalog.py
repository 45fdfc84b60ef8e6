"""Built-in series catalogue used to seed fresh workspaces."""

from models.series import CharacterRef, EnvironmentRef, SeriesProfile

DEFAULT_BACKGROUND = "#dbdac8"

# (id, name, art style, [(char_id, name, description)], [(env_id, name, description)])
_CATALOG = [
    (
        "c1", "Noir Whiskers",
        "High-contrast black and white ink noir, detective silhouettes, gritty textures",
        [("nw1", "Detective Paws", "Tabby cat in a trench coat"),
         ("nw2", "The Catnip King", "Fat Persian with gold chain")],
        [("e1", "Rainy Alley", "Gritty alley with puddles"),
         ("e2", "Private Eye Office", "Shadowy office with blinds")],
    ),
    (
        "c2", "Cubicle Quest",
        "Isometric office art, vibrant corporate colors, vector lines",
        [("cq1", "Greg from IT", "Weary man with error mug"),
         ("cq2", "The Manager", "Floating suit with red tie")],
        [("e3", "The Maze", "Infinite grey cubicles")],
    ),
    (
        "c3", "Galaxy Banal",
        "Retro-futurism, 70s sci-fi aesthetic, grainy film texture",
        [("gb1", "Pilot Pete", "Burrito eating human"),
         ("gb2", "Zorg", "Alien in safety vest")],
        [],
    ),
    (
        "c4", "Toddler Doom",
        "Bright crayon colors, chaotic scribbles, child-like painting",
        [("td1", "General Timmy", "Toddler with colander helmet"),
         ("td2", "Sgt. Sparky", "Damaged stuffed dog")],
        [],
    ),
    (
        "c5", "Unholy Roommates",
        "Gritty indie webcomic, heavy ink, psychedelic blacklight colors",
        [("ur1", "Father John", "Stressed priest in cassock"),
         ("ur2", "Vlad", "Cool vampire in leather jacket")],
        [],
    ),
    (
        "c6", "Squeak & Destroy",
        "Epic fantasy, miniature scale, detailed fur and armor",
        [("sd1", "Sir Squeaksalot", "Mouse in bottlecap armor"),
         ("sd2", "The Rat King", "Scarred rat with toothpick sword")],
        [],
    ),
    (
        "c11", "Grim Life",
        "Minimalist line art, monochromatic with color pop",
        [("gl1", "Grim", "Skeleton in hoodie"),
         ("gl2", "Mrs. Higgins", "Stubborn ghost lady")],
        [],
    ),
    (
        "c22", "Pond Buddies",
        "Soft charcoal and gouache, peaceful green",
        [("pb1", "Froppy", "Optimistic frog"),
         ("pb2", "Shell", "Slow turtle")],
        [],
    ),
]


def default_series(panel_count: int = 3) -> list[SeriesProfile]:
    """Return fresh copies of the built-in series profiles."""
    return [
        SeriesProfile(
            id=series_id,
            name=name,
            art_style_directive=style,
            background_color=DEFAULT_BACKGROUND,
            characters=[CharacterRef(cid, cname, cdesc) for cid, cname, cdesc in chars],
            environments=[EnvironmentRef(eid, ename, edesc) for eid, ename, edesc in envs],
            default_panel_count=panel_count,
        )
        for series_id, name, style, chars, envs in _CATALOG
    ]

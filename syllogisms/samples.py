"""
Sample registry.

Each sample is a dict describing a small rule program to run:
    text:         the rule file
    claims:       claims made after loading             [optional]
    actions:      actions performed after the claims    [optional]
    queries:      questions asked at the end            [optional]
    description:  str
"""


MONSTERS = """\
// Anything that is a monster is scary; scary things chase the player.
:: (thing) is a monster
    + (thing) is scary
    :: (thing) is awake
        + (thing) chases the player
+ "goblin" is a monster
+ "troll" is a monster
+ "troll" is awake
+ "rabbit" is awake
"""

LOCATIONS = """\
// A tracked thing can only be in one place at a time.
:: (thing) is tracked
    ? (thing) is in (place)
+ "key" is tracked
+ "lamp" is tracked
"""

GREETINGS = """\
:: (person) is in the room
    :: (person) is friendly
        * Greet
            > say: "hello" (person)
            + (person) was greeted
    * Wave at (person)
        > say: "waves at" (person)
+ "ada" is in the room
+ "ada" is friendly
+ "bob" is in the room
"""


SAMPLES = {
    "monsters": {
        "text": MONSTERS,
        "queries": [
            '"goblin" is scary',
            '"troll" chases the player',
            '"goblin" chases the player',
            '"rabbit" is scary',
        ],
        "description": "Nested conditions: claims that hold while their conditions do",
    },
    "locations": {
        "text": LOCATIONS,
        "claims": [
            '"key" is in "kitchen"',
            '"lamp" is in "kitchen"',
            '"key" is in "garden"',
        ],
        "queries": [
            '"key" is in "kitchen"',
            '"key" is in "garden"',
            '"lamp" is in "kitchen"',
        ],
        "description": "Exclusions: a new location retracts the old one",
    },
    "greetings": {
        "text": GREETINGS,
        "actions": ["Greet", 'Wave at "bob"'],
        "queries": ['"ada" was greeted'],
        "description": "Actions: callbacks and claims fired by the first rule that holds",
    },
}

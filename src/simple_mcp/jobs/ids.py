"""Readable task identifiers: ``task-<tool>-<Adjective>-<Adjective>-<Noun>``."""

from __future__ import annotations

import re
import secrets

ADJECTIVES = (
    "Able", "Agile", "Airy", "Amber", "Ample", "Aqua", "Arctic", "Ashen",
    "Azure", "Balmy", "Bold", "Brave", "Breezy", "Bright", "Brisk", "Bronze",
    "Calm", "Candid", "Cheery", "Chill", "Civic", "Clean", "Clear", "Clever",
    "Cloudy", "Coastal", "Cobalt", "Cosmic", "Cozy", "Crisp", "Curious", "Dapper",
    "Daring", "Dawn", "Deft", "Dusky", "Eager", "Early", "Earnest", "Easy",
    "Elegant", "Epic", "Even", "Fair", "Fancy", "Fast", "Fearless", "Fierce",
    "Fine", "Firm", "Fleet", "Fluffy", "Fond", "Free", "Fresh", "Frosty",
    "Gentle", "Giant", "Gifted", "Glad", "Gleaming", "Golden", "Grand", "Green",
    "Happy", "Hardy", "Hazy", "Hearty", "Honest", "Humble", "Icy", "Ideal",
    "Indigo", "Ivory", "Jade", "Jolly", "Jovial", "Keen", "Kind", "Lively",
    "Lucky", "Lunar", "Magic", "Mellow", "Merry", "Mighty", "Misty", "Modest",
    "Mossy", "Neat", "Nimble", "Noble", "Olive", "Patient", "Peppy", "Plucky",
    "Polar", "Polite", "Proud", "Quick", "Quiet", "Radiant", "Rapid", "Ready",
    "Regal", "Rosy", "Royal", "Rustic", "Sandy", "Serene", "Sharp", "Shiny",
    "Silent", "Silver", "Sleek", "Smooth", "Snowy", "Solar", "Solid", "Spry",
    "Steady", "Stellar", "Stormy", "Sturdy", "Sunny", "Swift", "Tidy", "Tranquil",
    "Trusty", "Vivid", "Warm", "Wild", "Windy", "Wise", "Witty", "Zesty",
)

NOUNS = (
    "Acorn", "Alder", "Anchor", "Badger", "Beacon", "Bear", "Beaver", "Birch",
    "Bison", "Boulder", "Brook", "Canyon", "Cedar", "Cliff", "Comet", "Condor",
    "Coral", "Cougar", "Crane", "Creek", "Dolphin", "Dune", "Eagle", "Ember",
    "Falcon", "Fern", "Finch", "Fjord", "Forest", "Fox", "Galaxy", "Gazelle",
    "Geyser", "Glacier", "Grove", "Harbor", "Hawk", "Heron", "Hill", "Ibis",
    "Island", "Jaguar", "Kestrel", "Lagoon", "Lake", "Lantern", "Lark", "Lynx",
    "Maple", "Marmot", "Meadow", "Mesa", "Meteor", "Moose", "Nebula", "Oak",
    "Ocean", "Orca", "Osprey", "Otter", "Owl", "Panda", "Panther", "Pebble",
    "Pelican", "Penguin", "Pine", "Planet", "Prairie", "Puffin", "Quail", "Quartz",
    "Rabbit", "Raven", "Reef", "Ridge", "River", "Robin", "Salmon", "Sequoia",
    "Shore", "Sparrow", "Spruce", "Stream", "Summit", "Swan", "Thistle", "Tiger",
    "Tundra", "Valley", "Walrus", "Willow", "Wolf", "Wren", "Yak", "Zebra",
)

_TOOL_NAME_UNSAFE = re.compile(r"[^a-z0-9]+")


def generate_task_id(tool_name: str) -> str:
    """Build a fresh id such as ``task-upgrade-Brave-Quiet-Falcon``.

    The tool part is lowercased and stripped to ``[a-z0-9]`` so the id
    always splits into exactly five hyphen-separated parts.
    """

    tool_part = _TOOL_NAME_UNSAFE.sub("", tool_name.lower()) or "job"
    return "-".join(
        (
            "task",
            tool_part,
            secrets.choice(ADJECTIVES),
            secrets.choice(ADJECTIVES),
            secrets.choice(NOUNS),
        ),
    )

"""
Built-in Baguio activity catalogue used by the sample itinerary retriever.
"""

from typing import Any

IMAGE_ROOT = "/images/activities"


def _activity(
    slug: str, title: str, time: str, desc: str, tags: list[str], peak_hours: str
) -> dict[str, Any]:
    return {
        "image": f"{IMAGE_ROOT}/{slug}.jpg",
        "title": title,
        "time": time,
        "desc": desc,
        "tags": tags,
        "peakHours": peak_hours,
    }


ACTIVITY_CATALOGUE: list[dict[str, Any]] = [
    _activity(
        "burnham", "Burnham Park", "24 Hours",
        "Central park with a lake, boat rides, bike rentals, gardens and open "
        "spaces. Entrance Fee: Free. Est. Duration: 1 Hour 30 Minutes.",
        ["Nature & Scenery", "Adventure", "Outdoor-Friendly", "Weather-Flexible"],
        "10 am - 11 am / 4 pm - 6 pm",
    ),
    _activity(
        "mines_view", "Mines View Park", "6:00 AM - 8:00 PM",
        "Scenic viewpoint overlooking Benguet's mining towns with souvenir "
        "shops nearby. Entrance Fee: Free. Est. Duration: 45 Minutes.",
        ["Nature & Scenery", "Shopping & Local Finds", "Outdoor-Friendly"],
        "6 am - 8 am / 5 pm - 6 pm",
    ),
    _activity(
        "cathedral", "Baguio Cathedral", "6:00 AM - 6:00 PM",
        "Neo-Gothic cathedral with twin spires and panoramic city views. "
        "Entrance Fee: Free. Est. Duration: 45 Minutes.",
        ["Culture & Arts", "Nature & Scenery", "Indoor-Friendly"],
        "Saturday & Sunday 6 am - 5 pm",
    ),
    _activity(
        "botanical", "Botanical Garden", "6:00 AM - 6:00 PM",
        "Lush garden showcasing native plants and cultural sculptures. "
        "Entrance Fee: Free. Est. Duration: 1 Hour.",
        ["Nature & Scenery", "Shopping & Local Finds", "Outdoor-Friendly", "Weather-Flexible"],
        "10:00 am - 12:00 pm",
    ),
    _activity(
        "mansion", "The Mansion", "8:00 AM - 5:00 PM",
        "Official summer residence of the Philippine President with a grand "
        "gate and manicured lawns. Entrance Fee: Free. Est. Duration: 45 Minutes.",
        ["Culture & Arts", "Nature & Scenery", "Outdoor-Friendly"],
        "10:00 am - 12:00 pm",
    ),
    _activity(
        "wright_park", "Wright Park", "6:00 AM - 6:00 PM",
        "Tree-lined park with a reflecting pool, known for horseback riding. "
        "Entrance Fee: Free. Est. Duration: 1 Hour.",
        ["Nature & Scenery", "Adventure", "Outdoor-Friendly"],
        "10:00 am - 12:00 pm",
    ),
    _activity(
        "camp_john_hay", "Camp John Hay", "8:00 AM - 5:00 PM",
        "Former U.S. military base turned leisure complex with hotels, a golf "
        "course and trails. Entrance Fee: Free. Est. Duration: 2 Hours.",
        ["Adventure", "Nature & Scenery", "Outdoor-Friendly", "Weather-Flexible"],
        "6 am - 8 am / 4 pm - 6 pm",
    ),
    _activity(
        "bencab", "Bencab Museum", "9:00 AM - 6:00 PM",
        "Museum featuring works of national artist Benedicto Cabrera and "
        "indigenous artifacts. Entrance Fee: ₱150.00. Est. Duration: 1 Hour 30 Minutes.",
        ["Culture & Arts", "Nature & Scenery", "Indoor-Friendly"],
        "10:00 am - 12:00 pm",
    ),
    _activity(
        "tam_awan", "Tam-Awan Village", "9:00 AM - 6:00 PM",
        "Reconstructed traditional Ifugao village showcasing Cordilleran "
        "culture and art. Entrance Fee: ₱60.00. Est. Duration: 1 Hour 30 Minutes.",
        ["Culture & Arts", "Adventure", "Weather-Flexible"],
        "10:00 am - 12:00 pm",
    ),
    _activity(
        "night_market", "Baguio Night Market", "9:00 PM - 2:00 AM",
        "Evening market offering affordable clothes, accessories and street "
        "food. Entrance Fee: Free. Est. Duration: 1 Hour 30 Minutes.",
        ["Shopping & Local Finds", "Food & Culinary", "Weather-Flexible"],
        "9:00 pm - 10:00 pm",
    ),
    _activity(
        "sm_baguio", "SM City Baguio", "10:00 AM - 9:00 PM",
        "Open-air mall with retail stores, restaurants and entertainment "
        "options. Entrance Fee: Free. Est. Duration: 2 Hours.",
        ["Shopping & Local Finds", "Food & Culinary", "Indoor-Friendly"],
        "Saturday & Sunday 6 am - 5 pm",
    ),
    _activity(
        "public_market", "Baguio Public Market", "5:00 AM - 7:00 PM",
        "Traditional market selling fresh produce, local delicacies and "
        "handicrafts. Entrance Fee: Free. Est. Duration: 1 Hour.",
        ["Shopping & Local Finds", "Food & Culinary", "Weather-Flexible", "Indoor-Friendly"],
        "5 am - 7 am / 5 pm - 7 pm",
    ),
    _activity(
        "good_shepherd", "Good Shepherd Convent", "8:00 AM - 5:00 PM",
        "Known for its homemade ube jam and other local treats made by nuns. "
        "Entrance Fee: Free. Est. Duration: 45 Minutes.",
        ["Shopping & Local Finds", "Food & Culinary", "Indoor-Friendly"],
        "1:00 pm - 3:00 pm",
    ),
    _activity(
        "mirador", "Mirador Heritage and Eco Park", "6:00 AM - 6:00 PM",
        "Eco-park with trails, bamboo groves and a peace memorial overlooking "
        "the city. Entrance Fee: ₱100.00. Est. Duration: 1 Hour.",
        ["Nature & Scenery", "Culture & Arts", "Outdoor-Friendly"],
        "7 am - 10 am / 5 pm - 6 pm",
    ),
    _activity(
        "diplomat", "Diplomat Hotel", "6:00 AM - 6:00 PM",
        "Historic abandoned hotel known for its architecture and ghost "
        "stories. Entrance Fee: Free. Est. Duration: 1 Hour.",
        ["Culture & Arts", "Nature & Scenery", "Outdoor-Friendly"],
        "5:00 pm - 6:00 pm",
    ),
    _activity(
        "lions_head", "Lions Head", "24 Hours",
        "Iconic lion sculpture along Kennon Road and a popular photo stop. "
        "Entrance Fee: Free. Est. Duration: 30 Minutes.",
        ["Nature & Scenery", "Culture & Arts", "Outdoor-Friendly"],
        "5 am - 7 am / 8 pm - 10 pm",
    ),
    _activity(
        "ili_likha", "Ili-Likha Artists Village", "10:00 AM - 8:00 PM",
        "Creative space with art installations, eco-friendly architecture and "
        "local eateries. Entrance Fee: Free. Est. Duration: 1 Hour.",
        ["Culture & Arts", "Shopping & Local Finds", "Weather-Flexible"],
        "12:00 pm - 3:00 pm",
    ),
    _activity(
        "pma", "Philippine Military Academy", "8:00 AM - 5:00 PM",
        "Premier military school with a museum and ceremonial grounds open to "
        "visitors. Entrance Fee: Free. Est. Duration: 2 Hours.",
        ["Culture & Arts", "Nature & Scenery", "Weather-Flexible"],
        "8:00 am - 10:00 am",
    ),
    _activity(
        "great_wall", "Great wall of Baguio", "6:00 AM - 6:00 PM",
        "Staircase resembling the Great Wall with panoramic views of the city "
        "mountains. Entrance Fee: Free. Est. Duration: 1 Hour.",
        ["Adventure", "Nature & Scenery", "Outdoor-Friendly"],
        "10:00 am - 12:00 pm",
    ),
    _activity(
        "yellow_trail", "Camp John Hay Yellow Trail", "8:00 AM - 6:00 PM",
        "A scenic, easy trail among pine trees in Camp John Hay. Entrance Fee: "
        "Free. Est. Duration: 2 Hours.",
        ["Adventure", "Nature & Scenery", "Outdoor-Friendly"],
        "8:00 am - 10:00 pm",
    ),
    _activity(
        "valley_of_colors", "Valley of Colors", "Anytime",
        "Hillside community in La Trinidad where brightly colored houses form "
        "a striking mural. Entrance Fee: Free. Est. Duration: 15 Minutes.",
        ["Culture & Arts", "Nature & Scenery", "Outdoor-Friendly"],
        "10:00 am - 11:00 am",
    ),
    _activity(
        "easter_weaving", "Easter Weaving Room", "8:00 AM - 5:00 PM",
        "Historic center preserving Cordillera weaving where artisans create "
        "handcrafted textiles. Entrance Fee: ₱150 - ₱200. Est. Duration: 1 Hour.",
        ["Culture & Arts", "Shopping & Local Finds", "Indoor-Friendly"],
        "10:00 am - 12:00 pm",
    ),
    _activity(
        "mt_kalugong", "Mt. Kalugong", "6:00 AM - 6:00 PM",
        "Limestone mountain in La Trinidad with valley views and unique rock "
        "formations. Entrance Fee: ₱80 - ₱100. Est. Duration: 2 Hours.",
        ["Nature & Scenery", "Adventure", "Outdoor-Friendly"],
        "10 am - 12 pm / 4 pm - 6 pm",
    ),
]

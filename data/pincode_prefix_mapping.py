# 3 digit pincode prefix -> city / state classification used for zoning.
# Prefixes missing here are treated as unknown and zoned Rest of India.


def _state_range(start, end, state, special=False, skip=()):
    return {
        str(prefix): {
            "city": "Other",
            "state": state,
            "is_metro": False,
            "is_special": special,
        }
        for prefix in range(start, end + 1)
        if prefix not in skip
    }


def _city(city, state, is_metro=True, is_special=False):
    return {
        "city": city,
        "state": state,
        "is_metro": is_metro,
        "is_special": is_special,
    }


NORTH_EAST_STATES = frozenset(
    {
        "Arunachal Pradesh",
        "Assam",
        "Manipur",
        "Meghalaya",
        "Mizoram",
        "Nagaland",
        "Tripura",
        "Sikkim",
    }
)


pincode_prefix_mapping = {}

# state blocks first, named cities below overwrite their prefixes
pincode_prefix_mapping.update(_state_range(110, 110, "Delhi"))
pincode_prefix_mapping.update(_state_range(120, 136, "Haryana"))
pincode_prefix_mapping.update(_state_range(140, 159, "Punjab"))
pincode_prefix_mapping.update(_state_range(171, 177, "Himachal Pradesh", special=True))
pincode_prefix_mapping.update(_state_range(180, 193, "Jammu and Kashmir", special=True))
pincode_prefix_mapping.update(_state_range(194, 194, "Ladakh", special=True))
pincode_prefix_mapping.update(_state_range(200, 285, "Uttar Pradesh", skip=range(246, 264)))
pincode_prefix_mapping.update(_state_range(246, 263, "Uttarakhand"))
pincode_prefix_mapping.update(_state_range(301, 345, "Rajasthan"))
pincode_prefix_mapping.update(_state_range(360, 396, "Gujarat"))
pincode_prefix_mapping.update(_state_range(400, 445, "Maharashtra", skip=(403,)))
pincode_prefix_mapping.update(_state_range(450, 488, "Madhya Pradesh"))
pincode_prefix_mapping.update(_state_range(490, 497, "Chhattisgarh"))
pincode_prefix_mapping.update(_state_range(500, 509, "Telangana"))
pincode_prefix_mapping.update(_state_range(515, 535, "Andhra Pradesh"))
pincode_prefix_mapping.update(_state_range(560, 591, "Karnataka"))
pincode_prefix_mapping.update(_state_range(600, 643, "Tamil Nadu", skip=(605, 609)))
pincode_prefix_mapping.update(_state_range(670, 695, "Kerala"))
pincode_prefix_mapping.update(_state_range(700, 743, "West Bengal", skip=(737,)))
pincode_prefix_mapping.update(_state_range(737, 737, "Sikkim", special=True))
pincode_prefix_mapping.update(_state_range(744, 744, "Andaman and Nicobar Islands", special=True))
pincode_prefix_mapping.update(_state_range(751, 770, "Odisha"))
pincode_prefix_mapping.update(_state_range(781, 788, "Assam", special=True))
pincode_prefix_mapping.update(_state_range(790, 792, "Arunachal Pradesh", special=True))
pincode_prefix_mapping.update(_state_range(793, 794, "Meghalaya", special=True))
pincode_prefix_mapping.update(_state_range(795, 795, "Manipur", special=True))
pincode_prefix_mapping.update(_state_range(796, 796, "Mizoram", special=True))
pincode_prefix_mapping.update(_state_range(797, 798, "Nagaland", special=True))
pincode_prefix_mapping.update(_state_range(799, 799, "Tripura", special=True))
pincode_prefix_mapping.update(_state_range(800, 855, "Bihar"))
pincode_prefix_mapping.update(_state_range(814, 835, "Jharkhand"))

pincode_prefix_mapping.update(
    {
        # metros
        "110": _city("Delhi", "Delhi"),
        "400": _city("Mumbai", "Maharashtra"),
        "401": _city("Mumbai", "Maharashtra"),
        "560": _city("Bangalore", "Karnataka"),
        "561": _city("Bangalore", "Karnataka"),
        "600": _city("Chennai", "Tamil Nadu"),
        "601": _city("Chennai", "Tamil Nadu"),
        "602": _city("Chennai", "Tamil Nadu"),
        "603": _city("Chennai", "Tamil Nadu"),
        "700": _city("Kolkata", "West Bengal"),
        "701": _city("Kolkata", "West Bengal"),
        "500": _city("Hyderabad", "Telangana"),
        "501": _city("Hyderabad", "Telangana"),
        "411": _city("Pune", "Maharashtra"),
        "412": _city("Pune", "Maharashtra"),
        "380": _city("Ahmedabad", "Gujarat"),
        "382": _city("Ahmedabad", "Gujarat"),
        "302": _city("Jaipur", "Rajasthan"),
        "303": _city("Jaipur", "Rajasthan"),
        "395": _city("Surat", "Gujarat"),
        "682": _city("Kochi", "Kerala"),
        "226": _city("Lucknow", "Uttar Pradesh"),
        "208": _city("Kanpur", "Uttar Pradesh"),
        "440": _city("Nagpur", "Maharashtra"),
        "452": _city("Indore", "Madhya Pradesh"),
        "462": _city("Bhopal", "Madhya Pradesh"),
        "530": _city("Visakhapatnam", "Andhra Pradesh"),
        "160": _city("Chandigarh", "Chandigarh"),
        "800": _city("Patna", "Bihar"),
        "751": _city("Bhubaneswar", "Odisha"),
        # NCR satellites are not metro priced
        "122": _city("Gurgaon", "Haryana", is_metro=False),
        "121": _city("Faridabad", "Haryana", is_metro=False),
        "201": _city("Noida/Ghaziabad", "Uttar Pradesh", is_metro=False),
        # state capitals and union territories
        "403": _city("Panaji", "Goa", is_metro=False),
        "781": _city("Guwahati", "Assam", is_metro=False, is_special=True),
        "799": _city("Agartala", "Tripura", is_metro=False, is_special=True),
        "796": _city("Aizawl", "Mizoram", is_metro=False, is_special=True),
        "790": _city("Itanagar", "Arunachal Pradesh", is_metro=False, is_special=True),
        "737": _city("Gangtok", "Sikkim", is_metro=False, is_special=True),
        "744": _city(
            "Port Blair", "Andaman and Nicobar Islands", is_metro=False, is_special=True
        ),
        "396": _city(
            "Silvassa", "Dadra and Nagar Haveli and Daman and Diu", is_metro=False
        ),
        "605": _city("Puducherry", "Puducherry", is_metro=False),
        "609": _city("Karaikal", "Puducherry", is_metro=False),
        "194": _city("Leh", "Ladakh", is_metro=False, is_special=True),
    }
)


# broad region per state, for same-region pricing
STATE_REGIONS = {
    "Delhi": "North",
    "Haryana": "North",
    "Punjab": "North",
    "Chandigarh": "North",
    "Himachal Pradesh": "North",
    "Jammu and Kashmir": "North",
    "Ladakh": "North",
    "Uttar Pradesh": "North",
    "Uttarakhand": "North",
    "Rajasthan": "West",
    "Gujarat": "West",
    "Maharashtra": "West",
    "Goa": "West",
    "Dadra and Nagar Haveli and Daman and Diu": "West",
    "Karnataka": "South",
    "Tamil Nadu": "South",
    "Kerala": "South",
    "Andhra Pradesh": "South",
    "Telangana": "South",
    "Puducherry": "South",
    "Andaman and Nicobar Islands": "South",
    "West Bengal": "East",
    "Odisha": "East",
    "Bihar": "East",
    "Jharkhand": "East",
    "Madhya Pradesh": "Central",
    "Chhattisgarh": "Central",
}

# zerowaste/utils.py


def normalize_tags(values):
    """
    Cleans submitted listing tags.
    Accepts a list of strings (comma-separated entries are split) and returns
    lowercase tags without duplicates, in submission order.
    """
    if not values:
        return []
    if isinstance(values, str):
        values = [values]

    tags = []
    for value in values:
        if value is None:
            continue
        for part in str(value).split(','):
            # Basic cleaning: collapse whitespace and lowercase
            tag = ' '.join(part.lower().split())
            if tag and tag not in tags:
                tags.append(tag)
    return tags

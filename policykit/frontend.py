"""Export a model and its rules as JSON for a browser-side enforcer."""

import json


def get_permission_for_user_json(enforcer, user):
    """Return the model text and every rule as a JSON document.

    The document has keys ``m`` (model text), ``p`` and ``g`` (rules, each
    prefixed with its policy type) and ends with a newline.
    """
    model = enforcer.get_model()
    document = {"m": model.to_text()}
    for sec in ("p", "g"):
        rules = []
        for ptype in model.get(sec, {}):
            rules.extend([ptype, *rule] for rule in model.get_policy(sec, ptype))
        document[sec] = rules
    text = json.dumps(document, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    text = text.replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")
    return text + "\n"
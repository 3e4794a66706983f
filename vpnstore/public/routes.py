# vpnstore/public/routes.py
from flask import Blueprint, render_template_string

from vpnstore.maintenance import render_maintenance_page
from vpnstore.services.catalog import list_products
from vpnstore.services.settings import public_settings

public_bp = Blueprint("public_bp", __name__)

LANDING_PAGE = """
<!doctype html>
<html><head><title>{{ s.siteName }}</title></head>
<body style="font-family:sans-serif;max-width:720px;margin:4rem auto">
{% if s.promoBannerEnabled and s.promoBannerText %}<p><strong>{{ s.promoBannerText }}</strong></p>{% endif %}
<h1>{{ s.heroTitle or s.siteName }}</h1>
<p>{{ s.heroSubtitle or s.siteDescription }}</p>
<ul>
{% for p in products %}<li>{{ p.name }} ({{ p.provider }}, {{ p.duration }}): {{ p.price }} Ks</li>{% endfor %}
</ul>
{% if s.footerText %}<footer>{{ s.footerText }}</footer>{% endif %}
</body></html>
"""


@public_bp.route("/")
def index():
    s = public_settings()
    products = list_products(page=1, limit=12)["products"]
    return render_template_string(LANDING_PAGE, s=s, products=products)


@public_bp.route("/maintenance")
def maintenance():
    return render_maintenance_page()


@public_bp.route("/healthz")
def healthz():
    return "ok", 200

"""
Page Scraper Tests

Tests for product extraction from literal HTML, price parsing and
fetching through a mocked httpx transport.
"""

import httpx
import pytest

from src.collector import (
    PageScraper,
    ScrapeError,
    detect_currency_from_url,
    extract_product_data,
    normalize_availability,
    parse_price,
)
from src.collector.page_scraper import find_products_in_json_ld


AMAZON_HTML = """
<html><body>
  <span id="productTitle">   Sony WH-1000XM5   </span>
  <a id="bylineInfo">Visit the Sony Store</a>
  <span class="a-price-whole">349,</span><span class="a-price-fraction">99</span>
  <span class="a-icon-alt">4.6 out of 5 stars</span>
  <span id="acrCustomerReviewText">12,345 ratings</span>
  <span>2K+ bought in past month</span>
  <div id="availability"><span>In Stock</span></div>
</body></html>
"""

JSON_LD_HTML = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "BreadcrumbList"},
  {"@type": ["Product", "Thing"],
   "name": "Trail Runner 2",
   "brand": {"@type": "Brand", "name": "Salomon"},
   "description": "Grippy trail shoe",
   "image": ["https://cdn.example.com/tr2.jpg", "https://cdn.example.com/tr2b.jpg"],
   "category": {"name": "Outdoor"},
   "aggregateRating": {"ratingValue": "4.4", "reviewCount": "312"},
   "offers": [{"price": "99.00", "priceCurrency": "gbp",
               "availability": "https://schema.org/InStock",
               "seller": {"name": "Trail Shop"}}]}
]}
</script>
</head><body><p>Free returns within 30 days. Free shipping on orders over 50.</p></body></html>
"""


class TestExtraction:
    """Tests for extract_product_data on literal pages."""

    def test_amazon(self):
        data = extract_product_data(AMAZON_HTML, "amazon", "https://www.amazon.de/dp/B09XS7JWHH")

        assert data.title == "Sony WH-1000XM5"
        assert data.brand == "Sony"
        assert data.price.amount == pytest.approx(349.99)
        assert data.price.currency == "EUR"
        assert data.rating == pytest.approx(4.6)
        assert data.review_count == 12345
        assert data.claims == ["2K+ bought in past month"]
        assert data.availability == "in_stock"

    def test_json_ld_product_in_graph(self):
        data = extract_product_data(JSON_LD_HTML, "unknown", "https://www.example.co.uk/p/tr2")

        assert data.title == "Trail Runner 2"
        assert data.brand == "Salomon"
        assert data.description == "Grippy trail shoe"
        assert data.image_url == "https://cdn.example.com/tr2.jpg"
        assert data.category == "Outdoor"
        assert data.rating == pytest.approx(4.4)
        assert data.review_count == 312
        assert data.price.amount == pytest.approx(99.0)
        assert data.price.currency == "GBP"
        assert data.availability == "in_stock"
        assert data.seller_name == "Trail Shop"
        assert data.has_return_policy is True
        assert data.has_shipping_info is True

    def test_meta_tags_take_precedence(self):
        html = """
        <html><head>
          <meta property="og:title" content="Meta Title">
          <meta property="product:price:amount" content="89,95">
          <meta property="product:brand" content="Meta Brand">
          <script type="application/ld+json">
            {"@type": "Product", "name": "LD Title", "brand": "LD Brand",
             "offers": {"price": "120.00", "availability": "OutOfStock"}}
          </script>
        </head><body></body></html>
        """

        data = extract_product_data(html, "unknown", "https://www.shop.fr/p/1")

        assert data.title == "Meta Title"
        assert data.brand == "Meta Brand"
        assert data.price.amount == pytest.approx(89.95)
        assert data.price.currency == "EUR"
        assert data.raw_meta["price_amount"] == "89,95"
        # offers are only read when no price was found yet
        assert data.availability == "unknown"

    def test_title_tag_fallback(self):
        data = extract_product_data("<html><head><title> Plain  Page </title></head></html>", "unknown", "https://a.com/x")

        assert data.title == "Plain Page"
        assert data.price is None
        assert data.has_return_policy is False

    def test_zalando_brand_attribute(self):
        html = '<html><body><div data-brand-name="Nike Sportswear"></div></body></html>'

        data = extract_product_data(html, "zalando", "https://www.zalando.de/x.html")

        assert data.brand == "Nike Sportswear"

    def test_shopify_meta_object(self):
        html = """
        <html><head><script>
        var meta = {"product": {"id": 1, "title": "Blue Shirt", "vendor": "Mystore", "type": "Shirts"}};
        for (var attr in meta) {}
        </script></head></html>
        """

        data = extract_product_data(html, "shopify", "https://mystore.com/products/blue-shirt")

        assert data.title == "Blue Shirt"
        assert data.brand == "Mystore"
        assert data.category == "Shirts"
        assert data.price is None

    def test_generic_microdata(self):
        html = """
        <html><body>
          <span itemprop="price" content="24.50">24,50 EUR</span>
          <meta itemprop="ratingValue" content="4,3">
          <span itemprop="reviewCount">87</span>
        </body></html>
        """

        data = extract_product_data(html, "unknown", "https://www.shop.nl/p/1")

        assert data.price.amount == pytest.approx(24.5)
        assert data.rating == pytest.approx(4.3)
        assert data.review_count == 87

    def test_json_ld_non_string_fields(self):
        html = """
        <html><head><script type="application/ld+json">
          {"@type": "Product",
           "name": {"@value": "ignored", "name": "Trail Runner 3"},
           "brand": ["Salomon", "Amer Sports"],
           "description": {"text": "no name key"},
           "category": ["Outdoor", "Shoes"],
           "image": {"url": ["https://cdn.example.com/a.jpg"]}}
        </script></head></html>
        """

        data = extract_product_data(html, "unknown", "https://www.example.com/p/tr3")

        assert data.title == "Trail Runner 3"
        assert data.brand == "Salomon"
        assert data.description is None
        assert data.category == "Outdoor"
        assert data.image_url is None

    def test_unbounded_review_count_ignored(self):
        html = """
        <html><head><script type="application/ld+json">
          {"@type": "Product", "name": "Lamp", "aggregateRating": {"ratingValue": "4.1", "reviewCount": "inf"}}
        </script></head></html>
        """

        data = extract_product_data(html, "unknown", "https://www.example.com/p/lamp")

        assert data.title == "Lamp"
        assert data.review_count is None

    def test_empty_html(self):
        data = extract_product_data("", "unknown", "https://a.com/x")

        assert data.title is None
        assert data.availability == "unknown"


class TestParsingHelpers:
    """Tests for price, availability and currency helpers."""

    @pytest.mark.parametrize("raw,expected", [
        ("1.234,56", 1234.56),
        ("$1,234.56", 1234.56),
        ("19,99 €", 19.99),
        ("1,299", 1299.0),
        ("EUR 49.90", 49.9),
        (29, 29.0),
        (12.5, 12.5),
    ])
    def test_parse_price(self, raw, expected):
        assert parse_price(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "", "free"])
    def test_parse_price_none(self, raw):
        assert parse_price(raw) is None

    @pytest.mark.parametrize("raw,expected", [
        ("https://schema.org/InStock", "in_stock"),
        ("http://schema.org/OutOfStock", "out_of_stock"),
        ("PreOrder", "preorder"),
        ("LimitedAvailability", "limited"),
        ("Discontinued", "unknown"),
    ])
    def test_normalize_availability(self, raw, expected):
        assert normalize_availability(raw) == expected

    @pytest.mark.parametrize("url,currency", [
        ("https://www.zalando.de/x", "EUR"),
        ("https://www.amazon.co.uk/x", "GBP"),
        ("https://shop.com/x", "USD"),
        ("https://www.ikea.se/x", "SEK"),
        ("https://www.galaxus.ch/x", "CHF"),
        ("https://www.shop.be/x", "EUR"),
    ])
    def test_currency_from_url(self, url, currency):
        assert detect_currency_from_url(url) == currency

    def test_find_products_in_nested_lists(self):
        data = [{"@type": "Organization"}, [{"@type": "Product", "name": "A"}]]

        assert [p["name"] for p in find_products_in_json_ld(data)] == ["A"]


class TestPageScraper:
    """Tests for fetching through a mocked transport."""

    @pytest.mark.asyncio
    async def test_scrape(self):
        def handler(request):
            return httpx.Response(200, text=AMAZON_HTML)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with PageScraper(client=client) as scraper:
            data = await scraper.scrape("https://www.amazon.de/dp/B09XS7JWHH", "amazon")

        assert data.title == "Sony WH-1000XM5"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        async with PageScraper(client=client) as scraper:
            with pytest.raises(ScrapeError) as exc_info:
                await scraper.fetch_html("https://www.example.com/gone")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with PageScraper(client=client) as scraper:
            with pytest.raises(ScrapeError, match="Request failed"):
                await scraper.fetch_html("https://www.example.com/p")

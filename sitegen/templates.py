"""
Static site skeletons for the templated materializer.

A template is one HTML page skeleton (rendered once per route), a shared
stylesheet and a shared script. Placeholders are ``{{UPPER_SNAKE}}``
tokens; ``features``, ``services`` and ``about`` sections are removed as
whole ``<section>`` blocks when a page has no content for them.
"""

from __future__ import annotations

from dataclasses import dataclass

from sitegen.errors import ValidationError


@dataclass(frozen=True)
class SiteTemplate:
    id: str
    html: str
    css: str
    js: str


# ── service-business ────────────────────────────────────────────
_SERVICE_BUSINESS_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{META_TITLE}}</title>
    <meta name="description" content="{{META_DESCRIPTION}}">
    <meta name="keywords" content="{{META_KEYWORDS}}">
    <link rel="stylesheet" href="/styles.css">
</head>
<body>
    <nav class="navbar">
        <div class="container">
            <a href="/" class="logo">{{NAVBAR_LOGO}}</a>
            <button class="mobile-menu-toggle" aria-label="Toggle menu">
                <span></span>
                <span></span>
                <span></span>
            </button>
            <ul class="nav-links">
                {{NAVBAR_LINKS}}
            </ul>
        </div>
    </nav>

    <section class="hero"{{HERO_STYLE}}>
        {{HERO_OVERLAY}}<div class="container">
            <h1>{{HERO_TITLE}}</h1>
            <p class="hero-subtitle">{{HERO_SUBTITLE}}</p>
            <a href="{{HERO_CTA_LINK}}" class="btn btn-primary">{{HERO_CTA_TEXT}}</a>
        </div>
    </section>

    <section class="features">
        <div class="container">
            <h2>{{FEATURES_TITLE}}</h2>
            <div class="features-grid">
                {{FEATURES_ITEMS}}
            </div>
        </div>
    </section>

    <section class="services">
        <div class="container">
            <h2>{{SERVICES_TITLE}}</h2>
            <div class="services-grid">
                {{SERVICES_ITEMS}}
            </div>
        </div>
    </section>

    <section class="about">
        <div class="container">
            <h2>{{ABOUT_TITLE}}</h2>
            <div class="about-content">
                {{ABOUT_CONTENT}}
            </div>
        </div>
    </section>

    <section class="contact" id="contact">
        <div class="container">
            <h2>{{CONTACT_TITLE}}</h2>
            <div class="contact-content">
                <div class="contact-info">
                    <p><strong>Phone:</strong> <a href="tel:{{PHONE}}">{{PHONE}}</a></p>
                    <p><strong>Email:</strong> <a href="mailto:{{EMAIL}}">{{EMAIL}}</a></p>
                    <p><strong>Address:</strong> {{ADDRESS}}</p>
                </div>
                {{CONTACT_FORM}}
            </div>
        </div>
    </section>

    <footer class="footer">
        <div class="container">
            <div class="footer-content">
                <div class="footer-section">
                    <h3>{{FOOTER_COMPANY_NAME}}</h3>
                    <p>{{FOOTER_DESCRIPTION}}</p>
                </div>
                <div class="footer-section">
                    <h4>Quick Links</h4>
                    <ul>
                        {{FOOTER_LINKS}}
                    </ul>
                </div>
                <div class="footer-section">
                    <h4>Contact</h4>
                    <p>{{FOOTER_PHONE}}</p>
                    <p>{{FOOTER_EMAIL}}</p>
                    <p>{{FOOTER_ADDRESS}}</p>
                </div>
            </div>
            <div class="footer-bottom">
                <p>&copy; {{YEAR}} {{FOOTER_COMPANY_NAME}}. All rights reserved.</p>
            </div>
        </div>
    </footer>

    <script src="/script.js"></script>
</body>
</html>
"""

_SERVICE_BUSINESS_CSS = """\
:root {
    --primary: {{PRIMARY_COLOR}};
    --secondary: {{SECONDARY_COLOR}};
    --accent: {{ACCENT_COLOR}};
    --text: #ffffff;
    --text-muted: #a0a0a0;
    --bg: #020202;
    --bg-light: #0a0a0a;
    --border: rgba(255, 255, 255, 0.1);
}

* {
    margin: 0;
    padding: 0;
    box-sizing: border-box;
}

body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, sans-serif;
    background-color: var(--bg);
    color: var(--text);
    line-height: 1.6;
}

.container {
    max-width: 1200px;
    margin: 0 auto;
    padding: 0 20px;
}

.navbar {
    position: fixed;
    top: 0;
    left: 0;
    right: 0;
    background-color: var(--primary);
    border-bottom: 1px solid var(--border);
    z-index: 1000;
    padding: 1rem 0;
}

.navbar .container {
    display: flex;
    justify-content: space-between;
    align-items: center;
}

.logo {
    font-size: 1.5rem;
    font-weight: bold;
    color: var(--text);
    text-decoration: none;
}

.nav-links {
    display: flex;
    list-style: none;
    gap: 2rem;
}

.nav-links a {
    color: var(--text);
    text-decoration: none;
    transition: opacity 0.3s;
}

.nav-links a:hover {
    opacity: 0.8;
}

.nav-links.open {
    display: flex;
    flex-direction: column;
    position: absolute;
    top: 100%;
    left: 0;
    right: 0;
    background: var(--primary);
    padding: 1rem;
}

.mobile-menu-toggle {
    display: none;
    flex-direction: column;
    gap: 4px;
    background: none;
    border: none;
    cursor: pointer;
}

.mobile-menu-toggle span {
    width: 25px;
    height: 2px;
    background: var(--text);
}

.hero {
    position: relative;
    padding: 150px 0 100px;
    text-align: center;
    background: linear-gradient(135deg, var(--primary) 0%, var(--secondary) 100%);
    background-size: cover;
    background-position: center;
}

.hero-overlay {
    position: absolute;
    inset: 0;
    background: rgba(0, 0, 0, 0.4);
}

.hero .container {
    position: relative;
}

.hero h1 {
    font-size: 3.5rem;
    margin-bottom: 1rem;
    font-weight: 700;
}

.hero-subtitle {
    font-size: 1.25rem;
    margin-bottom: 2rem;
    opacity: 0.9;
}

.btn {
    display: inline-block;
    padding: 12px 32px;
    border-radius: 8px;
    text-decoration: none;
    font-weight: 600;
    transition: transform 0.2s, box-shadow 0.2s;
}

.btn-primary {
    background-color: var(--accent);
    color: var(--text);
    border: none;
    cursor: pointer;
}

.btn-primary:hover {
    transform: translateY(-2px);
    box-shadow: 0 10px 20px rgba(0, 0, 0, 0.3);
}

section {
    padding: 80px 0;
}

section h2 {
    font-size: 2.5rem;
    margin-bottom: 3rem;
    text-align: center;
}

.features,
.about {
    background-color: var(--bg-light);
}

.features-grid,
.services-grid {
    display: grid;
    grid-template-columns: repeat(auto-fit, minmax(280px, 1fr));
    gap: 2rem;
}

.feature-card,
.service-card {
    padding: 2rem;
    border-radius: 12px;
    border: 1px solid var(--border);
    transition: transform 0.3s, box-shadow 0.3s;
}

.feature-card {
    background-color: var(--bg);
}

.service-card {
    background-color: var(--bg-light);
}

.feature-card:hover,
.service-card:hover {
    transform: translateY(-5px);
    box-shadow: 0 10px 30px rgba(0, 0, 0, 0.3);
}

.feature-card h3 {
    color: var(--primary);
    margin-bottom: 1rem;
}

.service-card h3 {
    color: var(--secondary);
    margin-bottom: 1rem;
}

.about-content {
    max-width: 800px;
    margin: 0 auto;
    font-size: 1.1rem;
}

.contact-info {
    margin-bottom: 2rem;
}

.contact-info p {
    margin-bottom: 1rem;
}

.contact-info a {
    color: var(--primary);
    text-decoration: none;
}

.contact-form {
    max-width: 600px;
    margin: 0 auto;
}

.form-group {
    margin-bottom: 1.5rem;
}

.form-group label {
    display: block;
    margin-bottom: 0.5rem;
}

.form-group input,
.form-group textarea {
    width: 100%;
    padding: 12px;
    background-color: var(--bg-light);
    border: 1px solid var(--border);
    border-radius: 8px;
    color: var(--text);
    font-size: 1rem;
}

.form-group textarea {
    min-height: 150px;
    resize: vertical;
}

.footer {
    background-color: var(--bg-light);
    padding: 60px 0 20px;
    border-top: 1px solid var(--border);
}

.footer-content {
    display: grid;
    grid-template-columns: repeat(auto-fit, minmax(250px, 1fr));
    gap: 2rem;
    margin-bottom: 2rem;
}

.footer-section h3,
.footer-section h4 {
    margin-bottom: 1rem;
    color: var(--primary);
}

.footer-section ul {
    list-style: none;
}

.footer-section ul li {
    margin-bottom: 0.5rem;
}

.footer-section a {
    color: var(--text-muted);
    text-decoration: none;
    transition: color 0.3s;
}

.footer-section a:hover {
    color: var(--primary);
}

.footer-bottom {
    text-align: center;
    padding-top: 2rem;
    border-top: 1px solid var(--border);
    color: var(--text-muted);
}

@media (max-width: 768px) {
    .nav-links {
        display: none;
    }

    .mobile-menu-toggle {
        display: flex;
    }

    .hero h1 {
        font-size: 2.5rem;
    }

    .features-grid,
    .services-grid {
        grid-template-columns: 1fr;
    }
}
"""

_SERVICE_BUSINESS_JS = """\
document.addEventListener('DOMContentLoaded', function () {
    const toggle = document.querySelector('.mobile-menu-toggle');
    const navLinks = document.querySelector('.nav-links');

    if (toggle && navLinks) {
        toggle.addEventListener('click', function () {
            navLinks.classList.toggle('open');
        });
    }

    document.querySelectorAll('a[href^="#"]').forEach(function (anchor) {
        anchor.addEventListener('click', function (e) {
            const target = document.querySelector(this.getAttribute('href'));
            if (target) {
                e.preventDefault();
                target.scrollIntoView({ behavior: 'smooth', block: 'start' });
            }
        });
    });

    const contactForm = document.querySelector('form.contact-form');
    if (contactForm) {
        contactForm.addEventListener('submit', function (e) {
            e.preventDefault();
            alert('Thank you for your message! We will get back to you soon.');
            this.reset();
        });
    }
});
"""

CONTACT_FORM_HTML = """\
<form class="contact-form" action="#contact" method="POST">
                    <div class="form-group">
                        <label for="name">Name</label>
                        <input type="text" id="name" name="name" required>
                    </div>
                    <div class="form-group">
                        <label for="email">Email</label>
                        <input type="email" id="email" name="email" required>
                    </div>
                    <div class="form-group">
                        <label for="message">Message</label>
                        <textarea id="message" name="message" required></textarea>
                    </div>
                    <button type="submit" class="btn btn-primary">Send Message</button>
                </form>"""


TEMPLATES: dict[str, SiteTemplate] = {
    "service-business": SiteTemplate(
        id="service-business",
        html=_SERVICE_BUSINESS_HTML,
        css=_SERVICE_BUSINESS_CSS,
        js=_SERVICE_BUSINESS_JS,
    ),
}


def get_template(template_id: str) -> SiteTemplate:
    try:
        return TEMPLATES[template_id]
    except KeyError:
        raise ValidationError(
            f"Unknown template '{template_id}'.",
            details={"available": sorted(TEMPLATES)},
        ) from None

"""Built-in demo bank, used when no repository has been synced."""

DEMO_QUESTIONS_MARKDOWN = """
1. What is the difference between null and undefined in JavaScript?
2. Predict the output of the following code:
```javascript
console.log(1 + "2" + "2");
console.log(1 + +"2" + "2");
```
3. Which method is used to schedule a function to run after a certain delay in JavaScript?
4. Explain the concept of "Hoisting" in JavaScript.
5. What will be the output?
```javascript
const bird = {
  size: 'small',
};
const mouse = {
  name: 'Mickey',
  small: true,
};
console.log(mouse[bird.size]);
console.log(mouse[bird.size] === mouse.small);
```
"""
